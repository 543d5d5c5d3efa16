"""
csmeparse
Intel CSME Firmware Image Decoder
"""

title = 'csmeparse v1.0.0'

from .errors import DecodeError
from .display import Messages
from .fpt import fpt_anl
from .cpd import cpd_anl
from .manifest import man_anl
from .ext import ext_anl
from .huffman import HuffmanDictionary
from .compression import mod_decompress
from .partition import Module, CodePartition, FlashImage, decode_partition, decode_image
