import ctypes
import collections

from .ext import ext_anl
from .structs import CSE_Struct, char, uint8_t, uint16_t, uint32_t, get_struct, chk_field

class MN2_Manifest_Flags(ctypes.LittleEndianStructure) :
	_fields_ = [
		('PVBit', uint32_t, 1), # Production Ready
		('FlagsReserved', uint32_t, 28),
		('PIDBound', uint32_t, 1),
		('IntelOwned', uint32_t, 1),
		('DebugSigned', uint32_t, 1)
	]

class MN2_Manifest(CSE_Struct) : # MANIFEST_HEADER, without the RSA block
	_pack_ = 1
	_fields_ = [
		('HeaderType',		uint16_t),		# 0x00
		('HeaderSubType',	uint16_t),		# 0x02
		('HeaderLength',	uint32_t),		# 0x04 dwords, Header & RSA block
		('HeaderVersion',	uint32_t),		# 0x08 0x10000
		('Flags',			uint32_t),		# 0x0C
		('VEN_ID',			uint32_t),		# 0x10
		('Day',				uint8_t),		# 0x14 BCD
		('Month',			uint8_t),		# 0x15 BCD
		('Year',			uint16_t),		# 0x16 BCD
		('Size',			uint32_t),		# 0x18 dwords
		('Tag',				char*4),		# 0x1C
		('BuildTag',		uint32_t),		# 0x20
		('Major',			uint16_t),		# 0x24
		('Minor',			uint16_t),		# 0x26
		('Hotfix',			uint16_t),		# 0x28
		('Build',			uint16_t),		# 0x2A
		('SVN',				uint32_t),		# 0x2C
		('MEU_Major',		uint16_t),		# 0x30
		('MEU_Minor',		uint16_t),		# 0x32
		('MEU_Hotfix',		uint16_t),		# 0x34
		('MEU_Build',		uint16_t),		# 0x36
		('MEU_Man_Ver',		uint16_t),		# 0x38
		('MEU_Man_Res',		uint16_t),		# 0x3A
		('GeneralData',		uint32_t),		# 0x3C
		('IPSpecific0',		uint32_t),		# 0x40
		('IPSpecific1',		uint32_t),		# 0x44
		('IPSpecific2',		uint32_t),		# 0x48
		('IPSpecific3',		uint32_t),		# 0x4C
		('IPSpecific4',		uint32_t),		# 0x50
		('IPSpecific5',		uint32_t),		# 0x54
		('Reserved',		uint32_t*8),	# 0x58
		('PublicKeySize',	uint32_t),		# 0x78 dwords
		('ExponentSize',	uint32_t),		# 0x7C dwords
		# 0x80
	]

	_title_ = 'Manifest Header'
	_bitfields_ = {'Flags' : MN2_Manifest_Flags}

	def validate(self) :
		chk_field(self, 'Tag', b'$MN2')
		chk_field(self, 'VEN_ID', 0x8086)
		chk_field(self, 'HeaderLength', 0xA1)

	def version(self) :
		return self.Major, self.Minor, self.Hotfix, self.Build

class MN2_Crypto(CSE_Struct) : # RSA-2048, parsed only
	_pack_ = 1
	_fields_ = [
		('RSAPublicKey',	uint32_t*64),	# 0x00
		('RSAExponent',		uint32_t),		# 0x100
		('RSASignature',	uint32_t*64),	# 0x104
		# 0x204
	]

	_title_ = 'Manifest Crypto Block'

MN2_HDR_SIZE = ctypes.sizeof(MN2_Manifest)
MN2_CRYPTO_SIZE = ctypes.sizeof(MN2_Crypto)

CodePartitionManifest = collections.namedtuple('CodePartitionManifest', ['header', 'crypto', 'extensions'])

# Decode $MN2 Header, Crypto Block & Extensions, buffer spans exactly the .man file
def man_anl(buffer) :
	mn2_hdr = get_struct(buffer, 0, MN2_Manifest)
	mn2_crypto = get_struct(buffer, MN2_HDR_SIZE, MN2_Crypto)
	mn2_exts = ext_anl(buffer, MN2_HDR_SIZE + MN2_CRYPTO_SIZE)

	return CodePartitionManifest(mn2_hdr, mn2_crypto, mn2_exts)
