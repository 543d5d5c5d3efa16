import types
import collections

from .cpd import MAN_SUFFIX, MET_SUFFIX, cpd_anl
from .display import Messages
from .errors import AmbiguousModule, DecodeError, MissingManifest, MissingModuleAttrs, MissingModuleData, ValidationFailed
from .ext import cse_mod_type, ext_anl, get_mod_attr
from .compression import mod_decompress
from .fpt import FPT_OFFSET, FPT_Pre_Header, fpt_anl, part_types
from .manifest import man_anl
from .structs import get_struct, get_range

Module = collections.namedtuple('Module', ['name', 'attr', 'extensions', 'decompressed', 'raw'])

CodePartition = collections.namedtuple('CodePartition', ['directory', 'manifest', 'modules', 'raw'])

FlashImage = collections.namedtuple('FlashImage', ['rom_bypass', 'fpt', 'partitions', 'failures'])

# Byte range of a $CPD Entry, relative to the $CPD start
def cpd_entry_data(buffer, cpd_entry) :
	return get_range(buffer, cpd_entry.address(), cpd_entry.Size)

# Analyze a .met Metadata file into Module Name, Attributes & Extensions
def met_anl(buffer, cpd_entry) :
	met_name = cpd_entry.file_name()

	if cpd_entry.compressed() : raise ValidationFailed('%s Compressed' % met_name, False, True)

	met_exts = ext_anl(cpd_entry_data(buffer, cpd_entry))
	met_attr = get_mod_attr(met_exts) # Last one wins

	if met_attr is None : raise MissingModuleAttrs('Metadata %s lacks a Module Attributes Extension' % met_name)

	return met_name[:-len(MET_SUFFIX)], met_attr, met_exts

# Decode a Code Partition, buffer starts at the $CPD Tag and spans the whole partition
def part_anl(buffer, huff_dict=None, msg=None, verbosity='error') :
	if msg is None : msg = Messages()

	cpd = cpd_anl(buffer)
	cpd_name = cpd.header.part_name()

	if not cpd.chk_ok : msg.warning('Invalid $CPD %s Checksum 0x%0.2X, expected 0x%0.2X' % (cpd_name, cpd.header.Checksum, cpd.chk_calc))

	# Manifest is the first $CPD Entry
	if not cpd.entries or not cpd.entries[0].file_name().endswith(MAN_SUFFIX) :
		raise MissingManifest('Code Partition %s lacks a leading %s Entry' % (cpd_name, MAN_SUFFIX))

	man = man_anl(cpd_entry_data(buffer, cpd.entries[0]))

	mod_info = {}
	for cpd_entry in cpd.entries :
		if not cpd_entry.file_name().endswith(MET_SUFFIX) : continue

		mod_name, mod_attr, mod_exts = met_anl(buffer, cpd_entry)

		if mod_name in mod_info : raise AmbiguousModule('Module %s has multiple %s Entries' % (mod_name, MET_SUFFIX))

		mod_info[mod_name] = (mod_attr, mod_exts)

	modules = {}
	for mod_name, (mod_attr, mod_exts) in sorted(mod_info.items()) :
		mod_entries = cpd.find(mod_name)

		if len(mod_entries) > 1 : raise AmbiguousModule('Module %s has %d data Entries' % (mod_name, len(mod_entries)))
		if not mod_entries : raise MissingModuleData('Module %s has no data Entry' % mod_name)

		mod_data = cpd_entry_data(buffer, mod_entries[0])
		mod_data_d = mod_decompress(mod_data, mod_attr, huff_dict, msg, verbosity)

		modules[mod_name] = Module(mod_name, mod_attr, mod_exts, mod_data_d, mod_data)

	return CodePartition(cpd, man, types.MappingProxyType(modules), bytes(buffer))

# Decode a whole Flash Image, a failing Code Partition does not stop the others
def image_anl(buffer, huff_dict=None, msg=None, verbosity='error') :
	if msg is None : msg = Messages()

	partitions = {}
	failures = {}

	rom_bypass = get_struct(buffer, 0, FPT_Pre_Header)
	fpt = fpt_anl(buffer[FPT_OFFSET:])

	if not fpt.chk_ok : msg.warning('Invalid $FPT Checksum 0x%0.2X, expected 0x%0.2X' % (fpt.chk_file, fpt.chk_calc))

	for fpt_entry in fpt.entries :
		if not fpt_entry.valid() : continue

		try :
			part_name = fpt_entry.part_name()
		except DecodeError as error :
			msg.error('Skipped $FPT Entry with invalid Name: %s' % error)
			continue

		if not fpt_entry.is_code() :
			part_kind = fpt_entry.kind()
			msg.note('Skipped %s partition %s' % (part_types[part_kind] if part_kind < len(part_types) else 'Unknown', part_name))
			continue

		if part_name in partitions or part_name in failures :
			msg.warning('Skipped duplicate $FPT Entry of partition %s' % part_name)
			continue

		try :
			part_data = get_range(buffer, fpt_entry.Offset, fpt_entry.Size)
			partitions[part_name] = part_anl(part_data, huff_dict, msg, verbosity)
		except DecodeError as error :
			failures[part_name] = error
			msg.error('Failed to decode partition %s: %s' % (part_name, error))

	return FlashImage(rom_bypass, fpt, types.MappingProxyType(partitions), types.MappingProxyType(failures))

decode_partition = part_anl
decode_image = image_anl

# Module Type of a Partition Information Extension Entry, by Module Name
def mod_type(partition, mod_name) :
	for extension in partition.manifest.extensions :
		if extension.name != 'PartitionInfo' : continue

		for entry in extension.entries :
			if entry.Name.decode('ascii', 'ignore') == mod_name :
				return cse_mod_type.get(entry.Type, 'Unknown')

	return 'Unknown'
