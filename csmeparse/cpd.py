import ctypes
import collections

from .structs import CSE_Struct, char, uint8_t, uint32_t, get_struct, get_entries, get_name, chk_field

MAN_SUFFIX = '.man'
MET_SUFFIX = '.met'

class CPD_Header_R1(CSE_Struct) : # CPD_HEADER
	_pack_ = 1
	_fields_ = [
		('Tag',				char*4),		# 0x00
		('NumModules',		uint32_t),		# 0x04
		('HeaderVersion',	uint8_t),		# 0x08 1
		('EntryVersion',	uint8_t),		# 0x09
		('HeaderLength',	uint8_t),		# 0x0A
		('Checksum',		uint8_t),		# 0x0B
		('PartitionName',	char*4),		# 0x0C
		# 0x10
	]

	_title_ = 'Code Partition Directory Header'

	def validate(self) :
		chk_field(self, 'Tag', b'$CPD')
		chk_field(self, 'HeaderLength', 0x10)

	def part_name(self) :
		return get_name(self.PartitionName, 'PartitionName')

class CPD_Entry_OffsetAttrib(ctypes.LittleEndianStructure) :
	_fields_ = [
		('OffsetCPD', uint32_t, 25), # Relative to the $CPD Tag
		('Compressed', uint32_t, 1),
		('OffsetReserved', uint32_t, 6)
	]

class CPD_Entry(CSE_Struct) : # CPD_ENTRY
	_pack_ = 1
	_fields_ = [
		('Name',			char*12),		# 0x00
		('OffsetAttrib',	uint32_t),		# 0x0C
		('Size',			uint32_t),		# 0x10
		('Reserved',		uint32_t),		# 0x14
		# 0x18
	]

	_title_ = 'Code Partition Directory Entry'
	_bitfields_ = {'OffsetAttrib' : CPD_Entry_OffsetAttrib}

	def file_name(self) :
		return get_name(self.Name)

	def address(self) :
		return self.get_flags('OffsetAttrib').OffsetCPD

	def compressed(self) :
		return bool(self.get_flags('OffsetAttrib').Compressed)

class CodePartitionDirectory(collections.namedtuple('CodePartitionDirectory', ['header', 'entries', 'chk_calc'])) :
	__slots__ = ()

	@property
	def chk_ok(self) :
		return self.header.Checksum == self.chk_calc

	def find(self, name) :
		return [entry for entry in self.entries if entry.file_name() == name]

# Checksum-8 of $CPD Header & Entries, the stored Checksum byte counts as zero
def cpd_chk(cpd_data) :
	return -(sum(cpd_data) - cpd_data[0xB]) & 0xFF

# Decode $CPD Header & Entries from a buffer starting at the $CPD Tag
def cpd_anl(buffer) :
	cpd_hdr = get_struct(buffer, 0, CPD_Header_R1)
	cpd_hdr_size = ctypes.sizeof(CPD_Header_R1)

	cpd_entries = get_entries(buffer, cpd_hdr_size, CPD_Entry, cpd_hdr.NumModules)

	cpd_data = bytes(buffer[:cpd_hdr_size + cpd_hdr.NumModules * ctypes.sizeof(CPD_Entry)])

	return CodePartitionDirectory(cpd_hdr, cpd_entries, cpd_chk(cpd_data))
