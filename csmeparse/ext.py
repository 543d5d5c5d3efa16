import ctypes
import collections

from .display import hash_hex
from .errors import UnknownExtension, ValidationFailed
from .structs import CSE_Struct, char, uint8_t, uint16_t, uint32_t, uint64_t, get_struct, get_entries, get_range

# CSE Module Types
cse_mod_type = {0:'Process', 1:'Shared Library', 2:'Data', 3:'Independent'}

# CSE Module Compression Types
COMP_NONE = 0
COMP_HUFFMAN = 1
COMP_LZMA = 2
comp_types = ['None','Huffman','LZMA']

class CSE_Ext_Header(CSE_Struct) : # Tag & Size shared by all Extensions
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04 Including this header
		# 0x08
	]

class CSE_Ext_00(CSE_Struct) : # SYSTEM_INFO_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('MinUMASize',		uint32_t),		# 0x08
		('ChipsetVersion',	uint32_t),		# 0x0C
		('IMGDefaultHash',	uint32_t*8),	# 0x10 SHA-256
		('PageableUMASize',	uint32_t),		# 0x30
		('Reserved0',		uint64_t),		# 0x34
		('Reserved1',		uint32_t),		# 0x3C
		# 0x40
	]

class CSE_Ext_00_Mod(CSE_Struct) : # INDEPENDENT_PARTITION_ENTRY
	_pack_ = 1
	_fields_ = [
		('Name',			char*4),		# 0x00
		('Version',			uint32_t),		# 0x04
		('UserID',			uint16_t),		# 0x08
		('Reserved',		uint16_t),		# 0x0A
		# 0x0C
	]

class CSE_Ext_01(CSE_Struct) : # InitScript
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('Reserved',		uint32_t),		# 0x08
		('ModuleCount',		uint32_t),		# 0x0C
		# 0x10
	]

class CSE_Ext_01_InitFlowFlags(ctypes.LittleEndianStructure) :
	_fields_ = [
		('IBL', uint32_t, 1),
		('Removable', uint32_t, 1),
		('InitImmediately', uint32_t, 1),
		('RestartPolicy', uint32_t, 1), # 0 Not Allowed, 1 Immediately
		('CM0_UMA', uint32_t, 1),
		('CM0_NO_UMA', uint32_t, 1),
		('CM3', uint32_t, 1),
		('InitFlowReserved', uint32_t, 25)
	]

class CSE_Ext_01_BootTypeFlags(ctypes.LittleEndianStructure) :
	_fields_ = [
		('Normal', uint32_t, 1),
		('HAP', uint32_t, 1),
		('HMRFPO', uint32_t, 1),
		('TempDisable', uint32_t, 1),
		('Recovery', uint32_t, 1),
		('SafeMode', uint32_t, 1),
		('FWUpdate', uint32_t, 1),
		('BootTypeReserved', uint32_t, 25)
	]

class CSE_Ext_01_Mod(CSE_Struct) : # InitScriptEntry
	_pack_ = 1
	_fields_ = [
		('PartitionName',	char*4),		# 0x00
		('ModuleName',		char*12),		# 0x04
		('InitFlowFlags',	uint32_t),		# 0x10
		('BootTypeFlags',	uint32_t),		# 0x14
		# 0x18
	]

	_bitfields_ = {'InitFlowFlags' : CSE_Ext_01_InitFlowFlags, 'BootTypeFlags' : CSE_Ext_01_BootTypeFlags}

class CSE_Ext_02(CSE_Struct) : # FEATURE_PERMISSIONS_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('ModuleCount',		uint32_t),		# 0x08
		# 0x0C
	]

class CSE_Ext_02_Mod(CSE_Struct) : # FEATURE_PERMISION_ENTRY
	_pack_ = 1
	_fields_ = [
		('UserID',			uint16_t),		# 0x00
		('Reserved',		uint16_t),		# 0x02
		# 0x04
	]

class CSE_Ext_03(CSE_Struct) : # MANIFEST_PARTITION_INFO_EXT
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('PartitionName',	char*4),		# 0x08
		('PartitionSize',	uint32_t),		# 0x0C Stock partition, without FIT/OEM data
		('Hash',			uint32_t*8),	# 0x10 SHA-256
		('VCN',				uint32_t),		# 0x30 Version Control Number
		('PartitionVer',	uint32_t),		# 0x34
		('DataFormatVer',	uint32_t),		# 0x38
		('InstanceID',		uint32_t),		# 0x3C
		('Flags',			uint32_t),		# 0x40
		('Reserved',		uint32_t*5),	# 0x44
		# 0x58
	]

class CSE_Ext_03_Mod(CSE_Struct) : # MANIFEST_MODULE_INFO_EXT
	_pack_ = 1
	_fields_ = [
		('Name',			char*12),		# 0x00
		('Type',			uint8_t),		# 0x0C (MODULE_TYPES)
		('Reserved0',		uint8_t),		# 0x0D
		('Reserved1',		uint16_t),		# 0x0E FFFF
		('MetadataSize',	uint32_t),		# 0x10
		('MetadataHash',	uint32_t*8),	# 0x14 SHA-256
		# 0x34
	]

	_enums_ = {'Type' : cse_mod_type}

class CSE_Ext_04(CSE_Struct) : # SHARED_LIB_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('ContextSize',		uint32_t),		# 0x08
		('TotAlocVirtSpc',	uint32_t),		# 0x0C
		('CodeBaseAddress',	uint32_t),		# 0x10
		('TLSSize',			uint32_t),		# 0x14
		('Reserved',		uint32_t),		# 0x18
		# 0x1C
	]

class CSE_Ext_05_Flags(ctypes.LittleEndianStructure) :
	_fields_ = [
		('FaultTolerant', uint32_t, 1), # (EXCEPTION_HANDLE_TYPES)
		('PermanentProcess', uint32_t, 1),
		('SingleInstance', uint32_t, 1),
		('TrustedSendReceiveSender', uint32_t, 1),
		('TrustedNotifySender', uint32_t, 1),
		('PublicSendReceiveReceiver', uint32_t, 1),
		('PublicNotifyReceiver', uint32_t, 1),
		('FlagsReserved', uint32_t, 25)
	]

class CSE_Ext_05(CSE_Struct) : # MAN_PROCESS_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('Flags',			uint32_t),		# 0x08
		('MainThreadID',	uint32_t),		# 0x0C
		('CodeBaseAddress',	uint32_t),		# 0x10
		('CodeSizeUncomp',	uint32_t),		# 0x14
		('CM0HeapSize',		uint32_t),		# 0x18
		('BSSSize',			uint32_t),		# 0x1C
		('DefaultHeapSize',	uint32_t),		# 0x20
		('MainThreadEntry',	uint32_t),		# 0x24
		('AllowedSysCalls',	uint32_t*3),	# 0x28
		('UserID',			uint16_t),		# 0x34 Unaligned, hence packed
		('Reserved0',		uint32_t),		# 0x36
		('Reserved1',		uint16_t),		# 0x3A
		('Reserved2',		uint64_t),		# 0x3C
		# 0x44
	]

	_bitfields_ = {'Flags' : CSE_Ext_05_Flags}

class CSE_Ext_05_Mod(CSE_Struct) : # PROCESS_GROUP_ID
	_pack_ = 1
	_fields_ = [
		('GroupID',			uint16_t),		# 0x00
		# 0x02
	]

class CSE_Ext_06(CSE_Struct) : # Threads
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_06_Mod(CSE_Struct) : # Thread
	_pack_ = 1
	_fields_ = [
		('StackSize',		uint32_t),		# 0x00
		('Flags',			uint32_t),		# 0x04
		('SchedulPolicy',	uint32_t),		# 0x08
		('Reserved',		uint32_t),		# 0x0C
		# 0x10
	]

	_enums_ = {'Flags' : {0:'Live', 1:'CM0 UMA Only'}}

class CSE_Ext_07(CSE_Struct) : # DeviceIds
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_07_Mod(CSE_Struct) : # Device
	_pack_ = 1
	_fields_ = [
		('DeviceID',		uint32_t),		# 0x00
		('Reserved',		uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_08(CSE_Struct) : # MmioRanges
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_08_Mod(CSE_Struct) : # MmioRange
	_pack_ = 1
	_fields_ = [
		('BaseAddress',		uint32_t),		# 0x00
		('SizeLimit',		uint32_t),		# 0x04
		('Flags',			uint32_t),		# 0x08 (MmioAccess)
		# 0x0C
	]

	_enums_ = {'Flags' : {0:'N/A', 1:'Read', 2:'Write', 3:'Read & Write'}}

class CSE_Ext_09(CSE_Struct) : # SPECIAL_FILE_PRODUCER_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('MajorNumber',		uint16_t),		# 0x08
		('Flags',			uint16_t),		# 0x0A
		# 0x0C
	]

class CSE_Ext_09_Mod(CSE_Struct) : # SPECIAL_FILE_DEF
	_pack_ = 1
	_fields_ = [
		('Name',			char*12),		# 0x00
		('AccessMode',		uint16_t),		# 0x0C
		('UserID',			uint16_t),		# 0x0E
		('GroupID',			uint16_t),		# 0x10
		('MinorNumber',		uint8_t),		# 0x12
		('Reserved0',		uint8_t),		# 0x13
		('Reserved1',		uint32_t),		# 0x14
		# 0x18
	]

class CSE_Ext_0A(CSE_Struct) : # MOD_ATTR_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('Compression',		uint8_t),		# 0x08 COMP_NONE, COMP_HUFFMAN or COMP_LZMA
		('Encryption',		uint8_t),		# 0x09
		('Reserved0',		uint8_t),		# 0x0A
		('Reserved1',		uint8_t),		# 0x0B
		('SizeUncomp',		uint32_t),		# 0x0C
		('SizeComp',		uint32_t),		# 0x10
		('DEV_ID',			uint16_t),		# 0x14
		('VEN_ID',			uint16_t),		# 0x16 0x8086
		('Hash',			uint32_t*8),	# 0x18 SHA-256 of the Module
		# 0x38
	]

	_enums_ = {'Compression' : dict(enumerate(comp_types)), 'Encryption' : {0:'None', 1:'AES-CBC'}}

	def get_hash(self) :
		return hash_hex(self.Hash, 0x20)

class CSE_Ext_0B(CSE_Struct) : # LockedRanges
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_0B_Mod(CSE_Struct) : # LockedRange
	_pack_ = 1
	_fields_ = [
		('RangeBase',		uint32_t),		# 0x00
		('RangeSize',		uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_0C_FWSKUAttrib(ctypes.LittleEndianStructure) :
	_fields_ = [
		('CSESize', uint64_t, 4), # Multiples of 0.5MB
		('SKUType', uint64_t, 3),
		('Workstation', uint64_t, 1),
		('M3', uint64_t, 1),
		('M0', uint64_t, 1),
		('SKUPlatform', uint64_t, 2),
		('SiClass', uint64_t, 4),
		('AttribReserved', uint64_t, 48)
	]

class CSE_Ext_0C(CSE_Struct) : # CLIENT_SYSTEM_INFO_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		('FWSKUCaps',		uint32_t),		# 0x08 (ConfigRuleSettings)
		('FWSKUCapsRes',	uint32_t*7),	# 0x0C
		('FWSKUAttrib',		uint64_t),		# 0x28
		# 0x30
	]

	_bitfields_ = {'FWSKUAttrib' : CSE_Ext_0C_FWSKUAttrib}
	_enums_ = {'SKUType' : {0:'Corporate', 1:'Consumer', 2:'Slim', 3:'Server'}, 'SKUPlatform' : {0:'H', 1:'LP'}}

class CSE_Ext_0D(CSE_Struct) : # USER_INFO_EXTENSION
	_pack_ = 1
	_fields_ = [
		('Tag',				uint32_t),		# 0x00
		('Size',			uint32_t),		# 0x04
		# 0x08
	]

class CSE_Ext_0D_Mod(CSE_Struct) : # USER_INFO_ENTRY
	_pack_ = 1
	_fields_ = [
		('UserID',			uint16_t),		# 0x00
		('Reserved',		uint16_t),		# 0x02
		('NVStorageQuota',	uint32_t),		# 0x04
		('RAMStorageQuota',	uint32_t),		# 0x08
		('WOPQuota',		uint32_t),		# 0x0C Wear-out Prevention
		('WorkingDir',		char*36),		# 0x10
		# 0x34
	]

# Extension Tag > Name, Structure, Entry Structure (None when the Extension has no Entries)
ext_dict = {
			0x0 : ('SystemInfo', CSE_Ext_00, CSE_Ext_00_Mod),
			0x1 : ('InitScript', CSE_Ext_01, CSE_Ext_01_Mod),
			0x2 : ('FeaturePermissions', CSE_Ext_02, CSE_Ext_02_Mod),
			0x3 : ('PartitionInfo', CSE_Ext_03, CSE_Ext_03_Mod),
			0x4 : ('SharedLibrary', CSE_Ext_04, None),
			0x5 : ('ProcessAttrs', CSE_Ext_05, CSE_Ext_05_Mod),
			0x6 : ('ThreadAttrs', CSE_Ext_06, CSE_Ext_06_Mod),
			0x7 : ('DeviceIds', CSE_Ext_07, CSE_Ext_07_Mod),
			0x8 : ('MmioRanges', CSE_Ext_08, CSE_Ext_08_Mod),
			0x9 : ('SpecialFiles', CSE_Ext_09, CSE_Ext_09_Mod),
			0xA : ('ModuleAttrs', CSE_Ext_0A, None),
			0xB : ('LockedRanges', CSE_Ext_0B, CSE_Ext_0B_Mod),
			0xC : ('ClientSystemInfo', CSE_Ext_0C, None),
			0xD : ('UserInfo', CSE_Ext_0D, CSE_Ext_0D_Mod),
			}

EXT_MODULE_ATTRS = 0xA

class ManifestExtension(collections.namedtuple('ManifestExtension', ['offset', 'header', 'data', 'entries'])) :
	__slots__ = ()

	@property
	def name(self) :
		return ext_dict[self.header.Tag][0]

	# Tables of the Extension and each of its Entries
	def ext_print(self) :
		ext_title = 'Extension %d, %s' % (self.header.Tag, self.name)

		return [self.data.struct_print(ext_title)] + [entry.struct_print(ext_title + ' Entry') for entry in self.entries]

# Decode a single Extension record, ext_data holds exactly its declared Size
def ext_parse(ext_data, offset) :
	ext_hdr = get_struct(ext_data, 0, CSE_Ext_Header)

	if ext_hdr.Tag not in ext_dict : raise UnknownExtension(ext_hdr.Tag)

	_,ext_struct,ext_mod_struct = ext_dict[ext_hdr.Tag]

	ext_hdr_data = get_struct(ext_data, 0, ext_struct) # Fixed part must fit within Size
	ext_entries = () if ext_mod_struct is None else get_entries(ext_data, ctypes.sizeof(ext_struct), ext_mod_struct)

	return ManifestExtension(offset, ext_hdr, ext_hdr_data, ext_entries)

class Ext_Cursor :
	"""Walks a stream of CSE Extensions.

	Each record advances the cursor by its own declared Size, regardless of how
	many bytes its known layout consumed.
	"""

	def __init__(self, buffer, start = 0, end = None) :
		self.buffer = bytes(buffer[start:len(buffer) if end is None else end])
		self.offset = 0

	def __iter__(self) :
		return self

	def __next__(self) :
		if self.offset >= len(self.buffer) : raise StopIteration

		ext_hdr = get_struct(self.buffer, self.offset, CSE_Ext_Header)

		# Unknown Tags carry no meaning for their Size either
		if ext_hdr.Tag not in ext_dict : raise UnknownExtension(ext_hdr.Tag)

		if ext_hdr.Size < ctypes.sizeof(CSE_Ext_Header) :
			raise ValidationFailed('CSE_Ext_Header.Size', '>= 0x%X' % ctypes.sizeof(CSE_Ext_Header), ext_hdr.Size)

		ext_data = get_range(self.buffer, self.offset, ext_hdr.Size)
		extension = ext_parse(ext_data, self.offset)

		self.offset += ext_hdr.Size

		return extension

# Decode all Extensions of a Manifest/Metadata byte range
def ext_anl(buffer, start = 0, end = None) :
	return tuple(Ext_Cursor(buffer, start, end))

# Last Module Attributes Extension of an Extension list
def get_mod_attr(extensions) :
	mod_attr = None

	for extension in extensions :
		if extension.header.Tag == EXT_MODULE_ATTRS : mod_attr = extension.data

	return mod_attr
