import hashlib
import collections

from .ext import COMP_LZMA

ModuleHash = collections.namedtuple('ModuleHash', ['declared', 'computed', 'valid'])

# Hash algorithm by digest size, CSME 11 uses SHA-256 while later CSE use SHA-384
hash_algos = {0x20 : hashlib.sha256, 0x30 : hashlib.sha384}

# Upper case hex digest of data, for a known digest size
def get_hash(data, hash_size) :
	return hash_algos[hash_size](data).hexdigest().upper()

# Check a Module against the Hash of its Module Attributes Extension
# LZMA Modules hash their compressed data in most firmware, their decompressed data in a few
# Huffman & stored Modules hash their decompressed data
def mod_hash_chk(module) :
	mod_hash = module.attr.get_hash()
	hash_size = len(mod_hash) // 2

	if module.attr.Compression == COMP_LZMA :
		raw_hash = get_hash(module.raw, hash_size)
		if raw_hash == mod_hash : return ModuleHash(mod_hash, raw_hash, True)

	data_hash = get_hash(module.decompressed, hash_size)

	return ModuleHash(mod_hash, data_hash, data_hash == mod_hash)
