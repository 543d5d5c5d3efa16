import json
import struct

import pytest

from csmeparse.display import Messages
from csmeparse.errors import HuffmanError
from csmeparse.huffman import HUFFMAN_CODE, HUFFMAN_DATA, HuffmanDictionary, cse_huffman_decompress, huffman_dict_load

from conftest import HUFF_SYM_1, huffman_module

def test_dictionary_shape(huff_dict) :
	assert huff_dict.shape == [(1, 1 << 31, 1), (2, 0, 1)]
	assert huff_dict.symbols[HUFFMAN_CODE][1] == [[0xAA] * 16]
	assert huff_dict.symbols[HUFFMAN_DATA][2] == [[0x01, 0x02], [0x03]] # Highest codeword first
	assert huff_dict.issues == []

def test_dictionary_discontinuity() :
	huff_dict = HuffmanDictionary.from_mapping({'code' : {'1' : '00', '011' : '01', '010' : '02'}})

	assert huff_dict.issues == ['Discontinuity between codeword lengths 1 and 3']

def test_dictionary_unknown_symbols() :
	huff_dict = HuffmanDictionary.from_mapping({'code' : {'1' : '????', '0' : ''}})

	assert huff_dict.symbols[HUFFMAN_CODE][1] == [[0x7F, 0x7F], [0x7F]]
	assert huff_dict.unknowns[HUFFMAN_CODE] == {1 : {0, 1}}

def test_dictionary_from_file(tmp_path, huff_mapping) :
	(tmp_path / 'Huffman.dat').write_text(json.dumps({'11' : huff_mapping}), encoding='utf-8')

	huff_dict = huffman_dict_load(str(tmp_path))

	assert huff_dict.shape == [(1, 1 << 31, 1), (2, 0, 1)]

	with pytest.raises(HuffmanError) :
		huffman_dict_load(str(tmp_path), 12)

def test_dictionary_missing_file(tmp_path) :
	assert huffman_dict_load(str(tmp_path)) is None

def test_decompress_single_symbol(huff_dict) :
	mod_data = huffman_module(b'\xFF' * 0x20)

	assert cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict) == bytes.fromhex(HUFF_SYM_1) * 0x100

def test_decompress_mixed_symbols(huff_dict) :
	# 01 00 1 1 1 1, then 00 until the chunk is full
	mod_data = huffman_module(b'\x4F' + b'\x00' * 1008)

	mod_data_d = cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict)

	assert mod_data_d == b'\x01\x02\x03' + b'\xAA' * 0x40 + b'\x03' * (0x1000 - 0x43)

def test_decompress_two_chunks(huff_dict) :
	mod_data = struct.pack('<II', 0 | (HUFFMAN_CODE << 25), 0x20 | (HUFFMAN_DATA << 25)) + b'\xFF' * 0x40

	mod_data_d = cse_huffman_decompress(mod_data, len(mod_data), 0x2000, huff_dict)

	assert mod_data_d == b'\xAA' * 0x2000

def test_decompress_compressed_size_limit(huff_dict) :
	# Bytes past the compressed size are not part of the stream
	mod_data = huffman_module(b'\xFF' * 0x10 + b'\xFF' * 0x10)

	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(mod_data, 4 + 0x10, 0x1000, huff_dict)

def test_decompress_early_end(huff_dict) :
	mod_data = huffman_module(b'\xFF' * 0x10)

	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict)

def test_decompress_overflowing_codeword(huff_dict) :
	# 0x10 byte symbols cannot fill a chunk after a 2 byte one
	mod_data = huffman_module(b'\x7F' + b'\xFF' * 0x20)

	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict)

def test_decompress_unknown_dictionary_type(huff_dict) :
	mod_data = struct.pack('<I', 0 | (0x40 << 25)) + b'\xFF' * 0x20

	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict)

def test_decompress_bad_chunk_offset(huff_dict) :
	mod_data = struct.pack('<I', 0x40 | (HUFFMAN_CODE << 25)) + b'\xFF' * 0x20

	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict)

def test_decompress_without_dictionary() :
	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(huffman_module(b'\xFF' * 0x20), 0x24, 0x1000, None)

def test_decompress_unknown_codewords_reported() :
	huff_dict = HuffmanDictionary.from_mapping({'code' : {'1' : '', '0' : '00'}})
	msg = Messages()

	mod_data = huffman_module(b'\x80' + b'\x00' * 0x1FF)
	mod_data_d = cse_huffman_decompress(mod_data, len(mod_data), 0x1000, huff_dict, msg, 'error')

	assert mod_data_d == b'\x7F' + b'\x00' * 0xFFF
	assert len(msg.errors) == 1
	assert 'Unknown codeword 1' in msg.plain()[0]

def test_decompress_verbosity_none() :
	huff_dict = HuffmanDictionary.from_mapping({'code' : {'1' : '', '0' : '00'}})
	msg = Messages()

	cse_huffman_decompress(huffman_module(b'\x80' + b'\x00' * 0x1FF), 0x204, 0x1000, huff_dict, msg, 'none')

	assert msg.all() == []

def test_decompress_codeword_above_length_maximum() :
	# Codeword 1 matches the length 1 shape, whose only codeword is 0
	huff_dict = HuffmanDictionary.from_mapping({'code' : {'0' : '00', '10' : '01'}})

	assert huff_dict.issues

	with pytest.raises(HuffmanError) :
		cse_huffman_decompress(huffman_module(b'\x80' + b'\x00' * 0x1FF), 0x204, 0x1000, huff_dict)
