# CSME decoding errors, every one of them is recoverable by the caller

class DecodeError(Exception) :
	pass

class TruncatedInput(DecodeError) :
	def __init__(self, name, needed, available) :
		self.name = name
		self.needed = needed
		self.available = available

		super().__init__('%s needs 0x%X bytes, only 0x%X available' % (name, needed, available))

class ValidationFailed(DecodeError) :
	def __init__(self, field, expected, actual) :
		self.field = field
		self.expected = expected
		self.actual = actual

		super().__init__('%s is %r, expected %r' % (field, actual, expected))

class EntryCountExceeded(DecodeError) :
	def __init__(self, count, limit) :
		self.count = count
		self.limit = limit

		super().__init__('Entry count %d exceeds %d' % (count, limit))

class UnknownExtension(DecodeError) :
	def __init__(self, ext_id) :
		self.ext_id = ext_id

		super().__init__('Unknown CSE Extension 0x%0.2X' % ext_id)

class MissingManifest(DecodeError) :
	pass

class MissingModuleAttrs(DecodeError) :
	pass

class MissingModuleData(DecodeError) :
	pass

class AmbiguousModule(DecodeError) :
	pass

class SizeMismatch(DecodeError) :
	def __init__(self, expected, actual) :
		self.expected = expected
		self.actual = actual

		super().__init__('Size is 0x%X, expected 0x%X' % (actual, expected))

class HuffmanError(DecodeError) :
	pass

class LzmaError(DecodeError) :
	pass

class OutOfBounds(DecodeError) :
	def __init__(self, offset, length, buffer_len) :
		self.offset = offset
		self.length = length
		self.buffer_len = buffer_len

		super().__init__('Range 0x%X + 0x%X exceeds buffer of 0x%X' % (offset, length, buffer_len))
