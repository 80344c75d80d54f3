"""
Extractors for legacy WordPress galleries.

This subpackage locates ``[gallery]`` shortcodes in raw post content and
``core/gallery`` blocks in the parsed block tree, and turns each of them into
an ordered list of media descriptors ready to be imported.
"""
