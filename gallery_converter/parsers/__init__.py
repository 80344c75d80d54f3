"""
Parsers used by the conversion pipeline.

Exposes the block grammar parser/serializer from
:mod:`gallery_converter.parsers.block_parser`.
"""

from .block_parser import Block, parse_blocks, serialize_blocks

__all__ = ["Block", "parse_blocks", "serialize_blocks"]
