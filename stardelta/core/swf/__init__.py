"""
SWF Tag Structure

Container codec, tag records and the editable tag kinds.
"""

from .codec import decode_swf, encode_swf
from .handlers import get_handler, handler_kinds
from .structural import dump_structural, load_structural, structure_from_dict, structure_to_dict
from .tags import SwfHeader, TagRecord, TagStructure

__all__ = [
    "decode_swf",
    "encode_swf",
    "get_handler",
    "handler_kinds",
    "dump_structural",
    "load_structural",
    "structure_from_dict",
    "structure_to_dict",
    "SwfHeader",
    "TagRecord",
    "TagStructure",
]
