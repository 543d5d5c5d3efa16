import re
import ctypes

from .display import col_y, col_e, ext_table, hash_hex
from .errors import OutOfBounds, TruncatedInput, ValidationFailed

# Set ctypes Structure types
char = ctypes.c_char
uint8_t = ctypes.c_ubyte
uint16_t = ctypes.c_ushort
uint32_t = ctypes.c_uint
uint64_t = ctypes.c_uint64

# Field name as table label, 'MinUMASize' > 'Min UMA Size'
def field_label(name) :
	return re.sub(r'(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])', ' ', name).replace('_', ' ')

# Printable value of a ctypes field
def field_value(field_type, value) :
	if isinstance(value, bytes) : return value.decode('ascii', 'replace')

	if isinstance(value, int) : return '0x%X' % value

	value_hex = hash_hex(value, ctypes.sizeof(field_type)) # Arrays of integers

	return value_hex if len(value_hex) <= 0x40 else '%s [...]' % value_hex[:8]

class CSE_Struct(ctypes.LittleEndianStructure) :
	"""Packed Structure which renders itself as a Field/Value table.

	_title_ names the table. _enums_ maps a field or bitfield name to its value
	names. _bitfields_ maps a packed field to the bitfield Structure splitting it.
	"""

	_title_ = ''
	_enums_ = {}
	_bitfields_ = {}

	# Bitfields of a packed field
	def get_flags(self, field = 'Flags') :
		flag_struct = self._bitfields_[field]

		return flag_struct.from_buffer_copy(getattr(self, field).to_bytes(ctypes.sizeof(flag_struct), 'little'))

	def value_rows(self, fields, source) :
		rows = []

		for field,field_type,*bits in fields :
			value = getattr(source, field)

			if field in self._bitfields_ :
				rows.extend(self.value_rows(self._bitfields_[field]._fields_, self.get_flags(field)))
			elif field in self._enums_ :
				rows.append([field_label(field), self._enums_[field].get(value, 'Unknown (%d)' % value)])
			elif bits == [1] :
				rows.append([field_label(field), ['No','Yes'][value]])
			else :
				rows.append([field_label(field), field_value(field_type, value)])

		return rows

	def struct_print(self, title = None) :
		pt = ext_table(['Field', 'Value'], False, 1)

		pt.title = col_y + (self._title_ if title is None else title) + col_e

		for row in self.value_rows(self._fields_, self) : pt.add_row(row)

		return pt

# Structure from buffer, never reads outside of it. Based on me_unpack.py by Igor Skochinsky
def get_struct(input_stream, start_offset, class_name, param_list = None) :
	if param_list is None : param_list = []

	structure = class_name(*param_list) # Unpack parameter list
	struct_len = ctypes.sizeof(structure)
	struct_data = input_stream[start_offset:start_offset + struct_len] if start_offset >= 0 else b''

	if len(struct_data) < struct_len :
		raise TruncatedInput(class_name.__name__, struct_len, max(len(input_stream) - max(start_offset, 0), 0))

	ctypes.memmove(ctypes.addressof(structure), bytes(struct_data), struct_len)

	if hasattr(structure, 'validate') : structure.validate()

	return structure

# Array of Structures, count derived from available bytes unless given
def get_entries(input_stream, start_offset, class_name, count = None) :
	entry_size = ctypes.sizeof(class_name)
	available = max(len(input_stream) - start_offset, 0)

	if count is None : count = available // entry_size # Trailing remainder is padding

	if available < count * entry_size :
		raise TruncatedInput('%s[%d]' % (class_name.__name__, count), count * entry_size, available)

	return tuple(get_struct(input_stream, start_offset + idx * entry_size, class_name) for idx in range(count))

# Owned copy of buffer[offset:offset + length], bounds checked
def get_range(input_stream, offset, length) :
	if offset < 0 or length < 0 or offset + length > len(input_stream) :
		raise OutOfBounds(offset, length, len(input_stream))

	return bytes(input_stream[offset:offset + length])

# ASCII name of a NUL-padded char array field
def get_name(value, field = 'Name') :
	try :
		return value.rstrip(b'\x00').decode('ascii')
	except UnicodeDecodeError :
		raise ValidationFailed(field, 'ASCII', value.hex().upper()) from None

# Fixed field check used by Structure validate hooks
def chk_field(structure, field, expected) :
	actual = getattr(structure, field)

	if actual != expected :
		raise ValidationFailed('%s.%s' % (type(structure).__name__, field), expected, actual)
