"""
Top-level package for the WordPress gallery → Imagely gallery converter.

This package bundles everything required to find legacy WordPress galleries
(``[gallery]`` shortcodes and ``core/gallery`` blocks) in post content,
import their images into a new gallery of the target catalog and rewrite the
post so that it references the new gallery.  Modules are split into
subpackages:

* :mod:`gallery_converter.parsers` – block grammar parser and reference builders
* :mod:`gallery_converter.extractors` – locating legacy galleries and resolving their media
* :mod:`gallery_converter.migrators` – gallery import, document rewriting and HTTP clients
* :mod:`gallery_converter.models` – pydantic data model and construct types
* :mod:`gallery_converter.utils` – errors, JSONL reports, backups and scope filtering

Orchestration and the exposed operations live in
:mod:`gallery_converter.conversion_tool`.
"""
