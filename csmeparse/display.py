import re

import pltable
import colorama

# Colorama Fore/Style combinations (colorama.init is called by the CLI)
col_r = colorama.Fore.RED + colorama.Style.BRIGHT
col_c = colorama.Fore.CYAN + colorama.Style.BRIGHT
col_g = colorama.Fore.GREEN + colorama.Style.BRIGHT
col_y = colorama.Fore.YELLOW + colorama.Style.BRIGHT
col_m = colorama.Fore.MAGENTA + colorama.Style.BRIGHT
col_e = colorama.Fore.RESET + colorama.Style.RESET_ALL

ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

# Initialize PLTable
def ext_table(row_col_names, header, padd) :
	pt = pltable.PrettyTable(row_col_names)
	pt.set_style(pltable.UNICODE_LINES)
	pt.xhtml = True
	pt.header = header # Boolean
	pt.left_padding_width = padd
	pt.right_padding_width = padd
	pt.hrules = pltable.ALL
	pt.vrules = pltable.ALL

	return pt

# Hex string of a little-endian Hash field
def hash_hex(value, size) :
	return '%0.*X' % (size * 2, int.from_bytes(value, 'little'))

# Collected Errors, Warnings & Notes of a decoding run
class Messages :

	def __init__(self) :
		self.errors = []
		self.warnings = []
		self.notes = []

	def error(self, text) :
		self.errors.append(col_r + 'Error: ' + text + col_e)

	def warning(self, text) :
		self.warnings.append(col_m + 'Warning: ' + text + col_e)

	def note(self, text) :
		self.notes.append(col_y + 'Note: ' + text + col_e)

	def all(self) :
		return self.errors + self.warnings + self.notes

	# Message text without Colorama escape codes
	def plain(self) :
		return [ansi_escape.sub('', msg) for msg in self.all()]
