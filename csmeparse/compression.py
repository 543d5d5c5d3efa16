import lzma

from .errors import LzmaError, SizeMismatch, TruncatedInput, ValidationFailed
from .ext import COMP_NONE, COMP_HUFFMAN, COMP_LZMA
from .huffman import cse_huffman_decompress

LZMA_HDR_SIZE = 0xE # LZMA Properties, Dictionary Size & Uncompressed Size (0xD) + first stream byte
LZMA_HDR_PADD = 0x3

# Remove three extra bytes from LZMA Module header for proper decompression
# https://github.com/skochinsky/me-tools/blob/master/me_unpack.py by Igor Skochinsky
def lzma_hdr_fix(mod_data) :
	if len(mod_data) < LZMA_HDR_SIZE + LZMA_HDR_PADD :
		raise TruncatedInput('LZMA Header', LZMA_HDR_SIZE + LZMA_HDR_PADD, len(mod_data))

	return bytes(mod_data[:LZMA_HDR_SIZE]) + bytes(mod_data[LZMA_HDR_SIZE + LZMA_HDR_PADD:])

# Output stops at max_size bytes, -1 for no limit
def lzma_decompress(mod_data, max_size=-1) :
	mod_data = lzma_hdr_fix(mod_data)

	try :
		return lzma.LZMADecompressor().decompress(mod_data, max_length=max_size)
	except lzma.LZMAError as error :
		raise LzmaError(str(error)) from error

# Decompress Module raw data based on its Module Attributes Extension
def mod_decompress(mod_data, mod_attr, huff_dict=None, msg=None, verbosity='error') :
	mod_comp = mod_attr.Compression

	if mod_comp == COMP_NONE :
		mod_data_d = bytes(mod_data)
	elif mod_comp == COMP_HUFFMAN :
		mod_data_d = cse_huffman_decompress(mod_data, mod_attr.SizeComp, mod_attr.SizeUncomp, huff_dict, msg, verbosity)
	elif mod_comp == COMP_LZMA :
		mod_data_d = lzma_decompress(mod_data, mod_attr.SizeUncomp + 1) # One extra byte reveals oversized output
	else :
		raise ValidationFailed('CSE_Ext_0A.Compression', [COMP_NONE, COMP_HUFFMAN, COMP_LZMA], mod_comp)

	if len(mod_data_d) != mod_attr.SizeUncomp : raise SizeMismatch(mod_attr.SizeUncomp, len(mod_data_d))

	return mod_data_d
