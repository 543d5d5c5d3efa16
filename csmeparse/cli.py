#!/usr/bin/env python3
#coding=utf-8

import os
import sys
import traceback

import colorama

from . import title
from .display import Messages, col_r, col_c, col_g, col_y, col_m, col_e, ext_table
from .digest import mod_hash_chk
from .errors import DecodeError, HuffmanError
from .ext import comp_types
from .fpt import part_types
from .huffman import huffman_dict_load
from .param import CSME_Param
from .partition import decode_image, mod_type

param = CSME_Param(sys.argv)

# Print csmeparse Help screen
def csme_help() :
	print(
		  '\nUsage: csmeparse [FilePath] {Options}\n\n{Options}\n\n'
		  '-?     : Displays help & usage screen\n'
		  '-exit  : Skips Press enter to exit prompt\n'
		  '-dfpt  : Shows FPT & CPD Header/Entry info\n'
		  '-ext   : Shows Manifest & Metadata Extension info\n'
		  '-ver86 : Enables verbose output during Huffman decompression\n'
		  '-chk   : Validates Module Hashes against their Metadata'
		  )

	csme_exit(0)

# Print csmeparse Header
def csme_hdr() :
	hdr_pt = ext_table([], False, 1)
	hdr_pt.add_row([col_y + '        %s        ' % title + col_e])

	print(hdr_pt)

# Huffman.dat is shipped next to the csmeparse modules
def get_data_dir() :
	return os.path.dirname(os.path.realpath(__file__))

# Report an unexpected exception, then leave through the exit prompt
def csme_crash(exc_type, exc_value, exc_tb) :
	if not issubclass(exc_type, KeyboardInterrupt) :
		crash_text = ''.join(traceback.format_exception(exc_type, exc_value, exc_tb))
		print(col_r + '\nError: %s crashed, please report the following:\n\n%s' % (title, crash_text) + col_e)

	csme_exit(1)

# Execute final actions
def csme_exit(code) :
	colorama.deinit() # Stop Colorama

	if not param.skip_pause : input('\nPress enter to exit')

	sys.exit(code)

# Load Huffman.dat from the csmeparse directory, Huffman Modules fail without it
def huffman_init() :
	try :
		huff_dict = huffman_dict_load(get_data_dir())
	except (HuffmanError, ValueError) as error :
		print(col_r + '\nError: Huffman dictionary file is invalid: %s' % error + col_e)
		return None

	if huff_dict is None :
		print(col_m + '\nWarning: Huffman dictionary file is missing!' + col_e)
	else :
		for issue in huff_dict.issues : print(col_m + '\nWarning: %s' % issue + col_e)

	return huff_dict

# Flash Partition Table Entries overview
def fpt_table(fpt) :
	pt_dfpt = ext_table([col_y + 'Name' + col_e, col_y + 'Start' + col_e, col_y + 'Size' + col_e, col_y + 'End' + col_e,
						col_y + 'Type' + col_e, col_y + 'Valid' + col_e], True, 1)
	pt_dfpt.title = col_y + 'Flash Partition Table' + col_e

	for fpt_entry in fpt.entries :
		p_kind = fpt_entry.kind()
		p_type = part_types[p_kind] if p_kind < len(part_types) else 'Unknown'
		p_name = fpt_entry.Name.decode('ascii', 'ignore')

		pt_dfpt.add_row([p_name, '0x%0.6X' % fpt_entry.Offset, '0x%0.6X' % fpt_entry.Size, '0x%0.6X' % (fpt_entry.Offset + fpt_entry.Size),
						p_type, ['No','Yes'][fpt_entry.valid()]])

	return pt_dfpt

# Code Partition Modules overview
def mod_table(part_name, partition) :
	pt_mod = ext_table([col_y + 'Name' + col_e, col_y + 'Type' + col_e, col_y + 'Compression' + col_e,
						col_y + 'Size Compressed' + col_e, col_y + 'Size Uncompressed' + col_e, col_y + 'Hash' + col_e], True, 1)
	pt_mod.title = col_y + 'Code Partition %s Modules' % part_name + col_e

	for mod_name, module in partition.modules.items() :
		mod_comp = module.attr.Compression

		if param.check :
			mod_hash = mod_hash_chk(module)
			mod_hash_p = col_g + 'Valid' + col_e if mod_hash.valid else col_r + 'Invalid' + col_e
		else :
			mod_hash_p = 'N/A'

		pt_mod.add_row([mod_name, mod_type(partition, mod_name), comp_types[mod_comp], '0x%X' % len(module.raw),
						'0x%X' % len(module.decompressed), mod_hash_p])

	return pt_mod

# Show a decoded Flash Image
def image_print(image) :
	if param.fpt_disp :
		print('\n%s' % image.rom_bypass.struct_print())
		print('\n%s' % image.fpt.header.struct_print())
		print('\n%s' % fpt_table(image.fpt))

	for part_name, partition in image.partitions.items() :
		print(col_c + '\nCode Partition %s' % part_name + col_e)

		if param.fpt_disp :
			print('\n%s' % partition.directory.header.struct_print())
			for cpd_entry in partition.directory.entries : print('\n%s' % cpd_entry.struct_print())

		if param.ext_disp :
			print('\n%s' % partition.manifest.header.struct_print())
			print('\n%s' % partition.manifest.crypto.struct_print())
			for extension in partition.manifest.extensions :
				for ext_pt in extension.ext_print() : print('\n%s' % ext_pt)

			for module in partition.modules.values() :
				for extension in module.extensions :
					for ext_pt in extension.ext_print() : print('\n%s' % ext_pt)

		print('\n%s' % mod_table(part_name, partition))

def main() :
	colorama.init()

	# Pause after any unexpected python exception
	sys.excepthook = csme_crash

	csme_hdr()

	source = param.files(sys.argv[1:]) # Skip script/executable

	if param.help_scr or not source : csme_help()

	huff_dict = huffman_init()
	exit_code = 0

	for file_in in source :
		if not os.path.isfile(file_in) :
			print(col_r + '\nError: File "%s" was not found!' % file_in + col_e)
			exit_code = 1
			continue

		print(col_g + '\n%s' % os.path.basename(file_in) + col_e)

		with open(file_in, 'rb') as in_file : reading = in_file.read()

		msg = Messages()

		try :
			image = decode_image(reading, huff_dict, msg, param.verbosity())
		except DecodeError as error :
			print(col_r + '\nError: Failed to decode Flash Partition Table: %s' % error + col_e)
			exit_code = 1
			continue

		image_print(image)

		for msg_text in msg.all() : print('\n%s' % msg_text)

		if image.failures : exit_code = 1

	csme_exit(exit_code)

if __name__ == '__main__' :
	main()
