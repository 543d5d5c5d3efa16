import os
import re
import json
import struct

from .errors import HuffmanError

CHUNK_SIZE = 0x1000
CHUNK_PLACEHOLDER = 0x7F

HUFFMAN_CODE = 0x20
HUFFMAN_DATA = 0x60
mapping_types = {'code' : HUFFMAN_CODE, 'data' : HUFFMAN_DATA}

class HuffmanDictionary :
	"""Codeword shape & symbol tables of one Huffman.dat dictionary version.

	shape holds (codeword length, lowest codeword left-aligned to 32 bits, highest
	codeword) ordered from the shortest codeword length. symbols and unknowns are
	keyed by dictionary type (0x20 code, 0x60 data) and then codeword length.
	"""

	def __init__(self, shape, symbols, unknowns, issues=None) :
		self.shape = shape
		self.symbols = symbols
		self.unknowns = unknowns
		self.issues = issues or []

	# Lowest & highest codeword of each codeword length, shortest length first
	@staticmethod
	def codeword_ranges(mapping) :
		ranges = {}

		for codeword_bits in sorted(mapping, key=len) :
			codeword = int(codeword_bits, 2)
			low, high = ranges.get(len(codeword_bits), (codeword, codeword))
			ranges[len(codeword_bits)] = (min(low, codeword), max(high, codeword))

		return ranges

	# Symbol bytes of a hex string and whether it is unknown ('' or '??' per byte)
	@staticmethod
	def parse_symbol(symbol) :
		if symbol == '' : return [CHUNK_PLACEHOLDER], True

		if re.fullmatch(r'(\?\?)+', symbol) : return [CHUNK_PLACEHOLDER] * (len(symbol) // 2), True

		return list(bytes.fromhex(symbol)), False

	# Build from a {'code': {codeword: hex symbol}, 'data': {...}} mapping
	@classmethod
	def from_mapping(cls, dict_mappings) :
		bad_types = sorted(set(dict_mappings) - set(mapping_types))

		if bad_types : raise HuffmanError('Unknown dictionary mapping %s' % ', '.join(bad_types))
		if not dict_mappings : raise HuffmanError('Empty Huffman dictionary')

		type_ranges = [cls.codeword_ranges(mapping) for mapping in dict_mappings.values()]
		ranges = type_ranges[0]
		lengths = list(ranges)
		issues = []

		if any(other != ranges for other in type_ranges[1:]) : issues.append('Mismatched mappings in the same dictionary')

		# Canonical codes continue right below the lowest codeword of the previous length
		for short_len, long_len in zip(lengths, lengths[1:]) :
			if 2 * ranges[short_len][0] - 1 != ranges[long_len][1] :
				issues.append('Discontinuity between codeword lengths %d and %d' % (short_len, long_len))

		shape = [(codeword_len, low << (32 - codeword_len), high) for codeword_len, (low, high) in ranges.items()]

		symbols = {}
		unknowns = {}

		for type_name, mapping in dict_mappings.items() :
			type_symbols = symbols.setdefault(mapping_types[type_name], {})
			type_unknowns = unknowns.setdefault(mapping_types[type_name], {})

			for codeword_len, (low, high) in ranges.items() :
				type_symbols[codeword_len] = []
				type_unknowns[codeword_len] = set()

				# Highest codeword first, looked up by (highest - codeword)
				for codeword in range(high, low - 1, -1) :
					symbol, is_unknown = cls.parse_symbol(mapping.get(format(codeword, '0%db' % codeword_len), '').strip())

					type_symbols[codeword_len].append(symbol)
					if is_unknown : type_unknowns[codeword_len].add(codeword)

		return cls(shape, symbols, unknowns, issues)

	# Load one dictionary version (11 for CSME 11, 12 for later) from Huffman.dat
	@classmethod
	def from_file(cls, dict_path, dict_version=11) :
		with open(dict_path, 'r', encoding='utf-8') as dict_file :
			versions = json.load(dict_file)

		if str(dict_version) not in versions : raise HuffmanError('Huffman dictionary version %s is missing' % dict_version)

		return cls.from_mapping(versions[str(dict_version)])

# Huffman.dat next to the package or a given directory, None when missing
def huffman_dict_load(dict_dir, dict_version=11) :
	dict_path = os.path.join(dict_dir, 'Huffman.dat')

	if not os.path.isfile(dict_path) : return None

	return HuffmanDictionary.from_file(dict_path, dict_version)

# Dictionary type & compressed range of each 0x1000 chunk, from the chunk header
def huffman_chunks(compressed_data, chunk_count) :
	header_size = chunk_count * 4

	if len(compressed_data) < header_size :
		raise HuffmanError('Chunk header needs 0x%X bytes, only 0x%X available' % (header_size, len(compressed_data)))

	header_entries = struct.unpack_from('<%dI' % chunk_count, compressed_data)

	# Bits 0-24 Offset after the header, 25-31 Dictionary type
	chunk_starts = [entry & 0x1FFFFFF for entry in header_entries]
	chunk_types = [(entry >> 25) & 0x7F for entry in header_entries]
	chunk_ends = chunk_starts[1:] + [len(compressed_data) - header_size]

	return header_size, list(zip(chunk_types, chunk_starts, chunk_ends))

# Decode one chunk of exactly CHUNK_SIZE bytes, codewords are read MSB first
def huffman_chunk(chunk_data, chunk_index, dictionary_type, huff_dict, msg, verbosity) :
	symbols = huff_dict.symbols[dictionary_type]
	unknowns = huff_dict.unknowns[dictionary_type]

	chunk_out = bytearray()
	bit_buffer = 0 # Next bits left-aligned to 32
	bit_count = 0
	data_pos = 0

	while len(chunk_out) < CHUNK_SIZE :
		while bit_count <= 24 and data_pos < len(chunk_data) :
			bit_buffer |= chunk_data[data_pos] << (24 - bit_count)
			bit_count += 8
			data_pos += 1

		# Shortest length whose lowest codeword the bits reach
		match = next((shape for shape in huff_dict.shape if bit_buffer >= shape[1]), None)

		if match is None :
			raise HuffmanError('No codeword matches bits 0x%0.8X at decompressed offset 0x%X' % (bit_buffer, chunk_index * CHUNK_SIZE + len(chunk_out)))

		codeword_len, _, codeword_max = match

		if bit_count < codeword_len :
			raise HuffmanError('Reached end of compressed stream early at decompressed offset 0x%X' % (chunk_index * CHUNK_SIZE + len(chunk_out)))

		codeword = bit_buffer >> (32 - codeword_len)
		bit_buffer = (bit_buffer << codeword_len) & 0xFFFFFFFF
		bit_count -= codeword_len

		# Non-canonical dictionaries can leave codewords above the highest of their length
		if codeword > codeword_max :
			raise HuffmanError('Codeword {0:0>{1}b} is above the highest codeword of length {1:d}'.format(codeword, codeword_len))

		symbol = symbols[codeword_len][codeword_max - codeword]

		if len(chunk_out) + len(symbol) > CHUNK_SIZE :
			raise HuffmanError('Overflowing codeword {:0>{}b} (dictionary 0x{:X}, symbol length {:d}) at decompressed offset 0x{:X}'.format(
				codeword, codeword_len, dictionary_type, len(symbol), chunk_index * CHUNK_SIZE + len(chunk_out)))

		if codeword in unknowns[codeword_len] and verbosity in ['all','error'] and msg is not None :
			msg.error('Unknown codeword {:0>{}b} (dictionary 0x{:X}, symbol length {:d}) at decompressed offset 0x{:X}'.format(
				codeword, codeword_len, dictionary_type, len(symbol), chunk_index * CHUNK_SIZE + len(chunk_out)))

		chunk_out.extend(symbol)

	return chunk_out

# CSE Huffman decompression, algorithm by "IllegalArgument" (https://github.com/IllegalArgument)
def cse_huffman_decompress(module_contents, compressed_size, decompressed_size, huff_dict, msg=None, verbosity='error') :
	# verbosity: 'all' adds a note per chunk, 'error' reports unknown codewords, 'none' is silent
	if huff_dict is None or not huff_dict.shape : raise HuffmanError('Huffman dictionary is not loaded')

	compressed_data = bytes(module_contents[:compressed_size])
	header_size, chunks = huffman_chunks(compressed_data, decompressed_size // CHUNK_SIZE)
	stream_data = compressed_data[header_size:]

	decompressed_data = bytearray()

	for chunk_index, (dictionary_type, chunk_start, chunk_end) in enumerate(chunks) :
		if verbosity == 'all' and msg is not None :
			msg.note('Processing chunk 0x%X at compressed offset 0x%X with dictionary 0x%X' % (chunk_index, chunk_start, dictionary_type))

		if dictionary_type not in huff_dict.symbols :
			raise HuffmanError('Chunk 0x%X uses unknown dictionary 0x%X' % (chunk_index, dictionary_type))

		if not chunk_start <= chunk_end <= len(stream_data) :
			raise HuffmanError('Chunk 0x%X spans invalid compressed range 0x%X - 0x%X' % (chunk_index, chunk_start, chunk_end))

		decompressed_data += huffman_chunk(stream_data[chunk_start:chunk_end], chunk_index, dictionary_type, huff_dict, msg, verbosity)

	return bytes(decompressed_data)
