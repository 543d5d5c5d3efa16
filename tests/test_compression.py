import lzma

import pytest

from csmeparse.compression import lzma_decompress, lzma_hdr_fix, mod_decompress
from csmeparse.errors import LzmaError, SizeMismatch, TruncatedInput, ValidationFailed
from csmeparse.ext import COMP_NONE, COMP_HUFFMAN, COMP_LZMA, ext_anl, get_mod_attr

from conftest import huffman_module, pack_mod_attr

def mod_attr(comp, size_uncomp, size_comp=0) :
	return get_mod_attr(ext_anl(pack_mod_attr(comp, size_uncomp, size_comp)))

# Intel LZMA Modules carry three extra bytes at 0xE
def intel_lzma(data) :
	alone = lzma.compress(data, format=lzma.FORMAT_ALONE)

	return alone[:0xE] + b'\x00\x00\x00' + alone[0xE:]

def test_lzma_hdr_fix() :
	mod_data = bytes(range(0x20))

	assert lzma_hdr_fix(mod_data) == mod_data[:0xE] + mod_data[0x11:]

def test_lzma_hdr_fix_minimum() :
	assert lzma_hdr_fix(b'\x00' * 0x11) == b'\x00' * 0xE

	with pytest.raises(TruncatedInput) :
		lzma_hdr_fix(b'\x00' * 0x10)

def test_lzma_decompress() :
	data = b'CSME' * 0x400

	assert lzma_decompress(intel_lzma(data)) == data

def test_lzma_decompress_corrupt() :
	mod_data = b'\x5D\x00\x00\x10\x00' + b'\xFF' * 8 + b'\xFF' + b'\x00\x00\x00' + b'\xFF' * 0x10

	with pytest.raises(LzmaError) :
		lzma_decompress(mod_data)

def test_mod_decompress_stored() :
	assert mod_decompress(b'\x01\x02\x03\x04', mod_attr(COMP_NONE, 4)) == b'\x01\x02\x03\x04'

def test_mod_decompress_huffman(huff_dict) :
	mod_data = huffman_module(b'\xFF' * 0x20)

	assert len(mod_decompress(mod_data, mod_attr(COMP_HUFFMAN, 0x1000, len(mod_data)), huff_dict)) == 0x1000

def test_mod_decompress_lzma() :
	data = bytes(range(0x100)) * 0x30

	assert mod_decompress(intel_lzma(data), mod_attr(COMP_LZMA, len(data))) == data

@pytest.mark.parametrize('comp, mod_data, size_uncomp', [
	(COMP_NONE, b'\x00' * 8, 10),
	(COMP_LZMA, intel_lzma(b'\x00' * 0x100), 0x200),
])
def test_mod_decompress_size_mismatch(comp, mod_data, size_uncomp) :
	with pytest.raises(SizeMismatch) as error :
		mod_decompress(mod_data, mod_attr(comp, size_uncomp))

	assert error.value.expected == size_uncomp

def test_mod_decompress_huffman_partial_chunk(huff_dict) :
	mod_data = huffman_module(b'\xFF' * 0x20)

	with pytest.raises(SizeMismatch) :
		mod_decompress(mod_data, mod_attr(COMP_HUFFMAN, 0x1800, len(mod_data)), huff_dict)

def test_mod_decompress_unknown_compression() :
	with pytest.raises(ValidationFailed) as error :
		mod_decompress(b'', mod_attr(3, 0))

	assert error.value.field == 'CSE_Ext_0A.Compression'

def test_lzma_decompress_stops_at_limit() :
	assert lzma_decompress(intel_lzma(b'\x00' * 0x10000), 0x11) == b'\x00' * 0x11

def test_mod_decompress_lzma_oversized_output() :
	with pytest.raises(SizeMismatch) as error :
		mod_decompress(intel_lzma(b'\x00' * 0x100000), mod_attr(COMP_LZMA, 0x10))

	assert (error.value.expected, error.value.actual) == (0x10, 0x11)
