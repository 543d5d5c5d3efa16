import struct

import pytest

from csmeparse.huffman import HuffmanDictionary

HUFF_SYM_1 = 'AA' * 16
HUFF_SYM_01 = '0102'
HUFF_SYM_00 = '03'

def pack_ext(tag, body) :
	return struct.pack('<II', tag, 8 + len(body)) + body

def pack_mod_attr(comp, size_uncomp, size_comp, mod_hash=b'\x00' * 0x20) :
	return pack_ext(0xA, struct.pack('<BBBBIIHH', comp, 0, 0, 0, size_uncomp, size_comp, 0, 0x8086) + mod_hash)

def pack_manifest(exts=b'', tag=b'$MN2', ven_id=0x8086, hdr_len=0xA1) :
	mn2_hdr = bytearray(0x80)
	struct.pack_into('<HHIIII', mn2_hdr, 0, 4, 0, hdr_len, 0x10000, 0, ven_id)
	struct.pack_into('<BBH', mn2_hdr, 0x14, 0x17, 0x05, 0x2016)
	struct.pack_into('<I4s', mn2_hdr, 0x18, (0x80 + 0x204 + len(exts)) // 4, tag)
	struct.pack_into('<HHHH', mn2_hdr, 0x24, 11, 0, 0, 1205)
	struct.pack_into('<II', mn2_hdr, 0x78, 0x40, 1)

	return bytes(mn2_hdr) + b'\x00' * 0x204 + exts

def checksum8(data) :
	return (0x100 - sum(data) & 0xFF) & 0xFF

def pack_cpd(files, part_name=b'FTPR', hdr_len=0x10) :
	"""$CPD Header + Entries followed by the file contents.

	files is a list of (name, data) or (name, data, compressed) tuples.
	"""
	entries_size = 0x10 + len(files) * 0x18
	cpd_entries = b''
	cpd_files = b''

	for file_info in files :
		name, data = file_info[0], file_info[1]
		compressed = file_info[2] if len(file_info) > 2 else False
		offset = entries_size + len(cpd_files)
		cpd_entries += struct.pack('<12sIII', name, offset | (compressed << 25), len(data), 0)
		cpd_files += data

	cpd_hdr = bytearray(struct.pack('<4sIBBBB4s', b'$CPD', len(files), 1, 1, hdr_len, 0, part_name))
	cpd_hdr[0xB] = checksum8(bytes(cpd_hdr) + cpd_entries)

	return bytes(cpd_hdr) + cpd_entries + cpd_files

def pack_fpt_entry(name, offset, size, flags=0) :
	return struct.pack('<4sIIIIIII', name, 0, offset, size, 0, 0, 0, flags)

def pack_fpt(entries, num=None, version=0x20) :
	entries_data = b''.join(entries)
	fpt_hdr = bytearray(struct.pack('<4sIBBBBHHIIHHHH', b'$FPT', len(entries) if num is None else num, version, 0x10, 0x20, 0,
									0, 0, 0, 0, 11, 0, 0, 1205))
	fpt_hdr[0xB] = checksum8(bytes(fpt_hdr))

	return bytes(fpt_hdr) + entries_data

def pack_image(partitions) :
	"""ROM-Bypass + $FPT followed by each partition at a 0x1000 aligned offset.

	partitions is a list of (name, data, flags) tuples.
	"""
	image = bytearray(0x1000)
	entries = []

	for name, data, flags in partitions :
		offset = len(image)
		entries.append(pack_fpt_entry(name, offset, len(data), flags))
		image += data + b'\xFF' * (-len(data) % 0x1000)

	fpt = pack_fpt(entries)
	image[0x10:0x10 + len(fpt)] = fpt

	return bytes(image)

def huffman_module(bits_data) :
	return struct.pack('<I', 0 | (0x20 << 25)) + bits_data

@pytest.fixture
def huff_mapping() :
	mapping = {'1' : HUFF_SYM_1, '01' : HUFF_SYM_01, '00' : HUFF_SYM_00}

	return {'code' : dict(mapping), 'data' : dict(mapping)}

@pytest.fixture
def huff_dict(huff_mapping) :
	return HuffmanDictionary.from_mapping(huff_mapping)
