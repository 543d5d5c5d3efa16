import ctypes

import pytest

from csmeparse.display import Messages
from csmeparse.errors import OutOfBounds, TruncatedInput, ValidationFailed
from csmeparse.structs import uint16_t, uint32_t, get_struct, get_entries, get_range, get_name

class Pair(ctypes.LittleEndianStructure) :
	_pack_ = 1
	_fields_ = [
		('First',			uint16_t),		# 0x00
		('Second',			uint32_t),		# 0x02
		# 0x06
	]

class Checked(ctypes.LittleEndianStructure) :
	_pack_ = 1
	_fields_ = [
		('Value',			uint32_t),		# 0x00
		# 0x04
	]

	def validate(self) :
		if self.Value != 0x11223344 : raise ValidationFailed('Checked.Value', 0x11223344, self.Value)

def test_get_struct_reads_little_endian() :
	pair = get_struct(b'\x00\x34\x12\x78\x56\x34\x12', 1, Pair)

	assert pair.First == 0x1234
	assert pair.Second == 0x12345678

def test_get_struct_truncated() :
	with pytest.raises(TruncatedInput) as error :
		get_struct(b'\x00' * 5, 0, Pair)

	assert error.value.needed == 6
	assert error.value.available == 5

def test_get_struct_negative_offset() :
	with pytest.raises(TruncatedInput) :
		get_struct(b'\x00' * 0x10, -2, Pair)

def test_get_struct_runs_validate_hook() :
	assert get_struct(b'\x44\x33\x22\x11', 0, Checked).Value == 0x11223344

	with pytest.raises(ValidationFailed) as error :
		get_struct(b'\x00\x00\x00\x00', 0, Checked)

	assert error.value.field == 'Checked.Value'
	assert error.value.actual == 0

def test_get_entries_ignores_trailing_padding() :
	entries = get_entries(b'\x01\x00' + b'\x00' * 4 + b'\x02\x00' + b'\x00' * 4 + b'\xFF' * 3, 0, Pair)

	assert [entry.First for entry in entries] == [1, 2]

def test_get_entries_with_count() :
	with pytest.raises(TruncatedInput) :
		get_entries(b'\x00' * 0xB, 0, Pair, 2)

	assert get_entries(b'', 0, Pair, 0) == ()

def test_get_range() :
	assert get_range(b'abcdef', 2, 3) == b'cde'
	assert isinstance(get_range(bytearray(b'abcdef'), 0, 6), bytes)

	with pytest.raises(OutOfBounds) as error :
		get_range(b'abcdef', 4, 3)

	assert (error.value.offset, error.value.length, error.value.buffer_len) == (4, 3, 6)

def test_get_name() :
	assert get_name(b'FTPR\x00\x00') == 'FTPR'

	with pytest.raises(ValidationFailed) :
		get_name(b'\xFF\xFE', 'PartitionName')

def test_messages_plain() :
	msg = Messages()
	msg.error('one')
	msg.warning('two')
	msg.note('three')

	assert msg.plain() == ['Error: one', 'Warning: two', 'Note: three']
