import ctypes
import collections

import crccheck

from .errors import EntryCountExceeded
from .structs import CSE_Struct, char, uint8_t, uint16_t, uint32_t, get_struct, get_entries, get_name, chk_field

FPT_OFFSET = 0x10 # $FPT follows the ROM-Bypass instructions
FPT_MAX_ENTRIES = 127

PART_CODE = 0
PART_DATA = 1
part_types = ['Code','Data']

class FPT_Pre_Header(CSE_Struct) : # ROM_BYPASS, 0 or FFFFFFFF when unused
	_pack_ = 1
	_fields_ = [
		('ROMB_Instr_0',	uint32_t),		# 0x00
		('ROMB_Instr_1',	uint32_t),		# 0x04
		('ROMB_Instr_2',	uint32_t),		# 0x08
		('ROMB_Instr_3',	uint32_t),		# 0x0C
		# 0x10
	]

	_title_ = 'Flash Partition Table ROM-Bypass'

class FPT_Header(CSE_Struct) : # FPT_HEADER v2.0
	_pack_ = 1
	_fields_ = [
		('Tag',				char*4),		# 0x00
		('NumPartitions',	uint32_t),		# 0x04
		('HeaderVersion',	uint8_t),		# 0x08
		('EntryVersion',	uint8_t),		# 0x09
		('HeaderLength',	uint8_t),		# 0x0A
		('HeaderChecksum',	uint8_t),		# 0x0B
		('TicksToAdd',		uint16_t),		# 0x0C
		('TokensToAdd',		uint16_t),		# 0x0E
		('Reserved',		uint32_t),		# 0x10
		('FlashLayout',		uint32_t),		# 0x14 (FLASH_LAYOUT_TYPES)
		('FitMajor',		uint16_t),		# 0x18
		('FitMinor',		uint16_t),		# 0x1A
		('FitHotfix',		uint16_t),		# 0x1C
		('FitBuild',		uint16_t),		# 0x1E
		# 0x20
	]

	_title_ = 'Flash Partition Table 2.0 Header'

	def validate(self) :
		chk_field(self, 'Tag', b'$FPT')
		chk_field(self, 'HeaderLength', 0x20)

class FPT_Header_21_Flags(ctypes.LittleEndianStructure) :
	_fields_ = [
		('Redundancy', uint8_t, 1),
		('FlagsReserved', uint8_t, 7),
	]

class FPT_Header_21(CSE_Struct) : # FPT_HEADER v2.1
	_pack_ = 1
	_fields_ = [
		('Tag',				char*4),		# 0x00
		('NumPartitions',	uint32_t),		# 0x04
		('HeaderVersion',	uint8_t),		# 0x08 21
		('EntryVersion',	uint8_t),		# 0x09
		('HeaderLength',	uint8_t),		# 0x0A
		('Flags',			uint8_t),		# 0x0B
		('TicksToAdd',		uint16_t),		# 0x0C
		('TokensToAdd',		uint16_t),		# 0x0E
		('SPSFlags',		uint32_t),		# 0x10
		('HeaderChecksum',	uint32_t),		# 0x14 CRC-32 of Header & Entries with this field zeroed
		('FitMajor',		uint16_t),		# 0x18
		('FitMinor',		uint16_t),		# 0x1A
		('FitHotfix',		uint16_t),		# 0x1C
		('FitBuild',		uint16_t),		# 0x1E
		# 0x20
	]

	_title_ = 'Flash Partition Table 2.1 Header'
	_bitfields_ = {'Flags' : FPT_Header_21_Flags}

	def validate(self) :
		chk_field(self, 'Tag', b'$FPT')
		chk_field(self, 'HeaderLength', 0x20)

class FPT_Entry_Flags(ctypes.LittleEndianStructure) : # FPT_ENTRY_ATTRIBUTES
	_fields_ = [
		('Type', uint32_t, 6),
		('FlagsReserved0', uint32_t, 1),
		('CopyToDramCache', uint32_t, 1),
		('FlagsReserved1', uint32_t, 7),
		('BuiltWithLength1', uint32_t, 1),
		('BuiltWithLength2', uint32_t, 1),
		('FlagsReserved2', uint32_t, 7),
		('EntryValid', uint32_t, 8) # FF when invalid
	]

class FPT_Entry(CSE_Struct) : # FPT_ENTRY
	_pack_ = 1
	_fields_ = [
		('Name',			char*4),		# 0x00
		('Reserved0',		uint32_t),		# 0x04
		('Offset',			uint32_t),		# 0x08 From the start of the image
		('Size',			uint32_t),		# 0x0C
		('Reserved1',		uint32_t),		# 0x10
		('Reserved2',		uint32_t),		# 0x14
		('Reserved3',		uint32_t),		# 0x18
		('Flags',			uint32_t),		# 0x1C
		# 0x20
	]

	_title_ = 'Flash Partition Table Entry'
	_bitfields_ = {'Flags' : FPT_Entry_Flags}
	_enums_ = {'Type' : dict(enumerate(part_types))}

	def part_name(self) :
		return get_name(self.Name)

	def kind(self) :
		return self.get_flags().Type

	def valid(self) :
		return self.get_flags().EntryValid != 0xFF

	def is_code(self) :
		return self.valid() and self.kind() == PART_CODE

class FlashPartitionTable(collections.namedtuple('FlashPartitionTable', ['header', 'entries', 'chk_file', 'chk_calc'])) :
	__slots__ = ()

	@property
	def chk_ok(self) :
		return self.chk_file == self.chk_calc

	def code_entries(self) :
		return [entry for entry in self.entries if entry.is_code()]

# $FPT Header Structure by Version. Some FIT builds write v2.1 Headers with a v2.0 Version,
# these are told apart by the upper CRC-32 word, which v2.0 keeps as Reserved zeroes
def get_fpt(buffer, offset) :
	hdr_data = bytes(buffer[offset:offset + 0x18])

	if len(hdr_data) < 0x18 : return FPT_Header

	if hdr_data[0x8] == 0x21 : return FPT_Header_21

	is_fit_bug = hdr_data[0x8] == 0x20 and hdr_data[0x16:0x18] not in (b'\x00\x00', b'\xFF\xFF')

	return FPT_Header_21 if is_fit_bug else FPT_Header

# Stored & calculated $FPT Checksum, CRC-32 for v2.1 and two's complement 8-bit sum for v2.0
def fpt_chk(fpt_data, fpt_hdr) :
	if isinstance(fpt_hdr, FPT_Header_21) :
		crc_data = bytearray(fpt_data)
		crc_data[0x8] = 0x21 # Version as signed, even if stored as v2.0
		crc_data[0x14:0x18] = b'\x00' * 4

		return fpt_hdr.HeaderChecksum, crccheck.crc.Crc32.calc(crc_data)

	byte_sum = sum(fpt_data[:fpt_hdr.HeaderLength]) - fpt_hdr.HeaderChecksum

	return fpt_hdr.HeaderChecksum, -byte_sum & 0xFF

# Decode $FPT Header & Entries from a buffer starting at the $FPT Tag
def fpt_anl(buffer) :
	fpt_hdr = get_struct(buffer, 0, get_fpt(buffer, 0))
	fpt_part_num = fpt_hdr.NumPartitions

	if fpt_part_num > FPT_MAX_ENTRIES : raise EntryCountExceeded(fpt_part_num, FPT_MAX_ENTRIES)

	fpt_entries = get_entries(buffer, ctypes.sizeof(fpt_hdr), FPT_Entry, fpt_part_num)

	fpt_data = bytes(buffer[:ctypes.sizeof(fpt_hdr) + fpt_part_num * ctypes.sizeof(FPT_Entry)])
	chk_file, chk_calc = fpt_chk(fpt_data, fpt_hdr)

	return FlashPartitionTable(fpt_hdr, fpt_entries, chk_file, chk_calc)
