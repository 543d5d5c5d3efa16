# Process csmeparse Parameters
class CSME_Param :

	def __init__(self, source) :

		self.val = ['-?','-exit','-dfpt','-ext','-ver86','-chk']

		self.help_scr = False
		self.skip_pause = False
		self.fpt_disp = False
		self.ext_disp = False
		self.cse_verbose = False
		self.check = False

		if '-?' in source : self.help_scr = True
		if '-exit' in source : self.skip_pause = True
		if '-dfpt' in source : self.fpt_disp = True
		if '-ext' in source : self.ext_disp = True
		if '-ver86' in source : self.cse_verbose = True
		if '-chk' in source : self.check = True

	# Huffman message verbosity: All | Error | None
	def verbosity(self) :
		return 'all' if self.cse_verbose else 'error'

	# Input files, everything which is not a known parameter
	def files(self, source) :
		return [arg for arg in source if arg not in self.val]
