"""
Gallery import and document rewriting.

This subpackage holds the import pipeline that creates a gallery and imports
its media with per-item failure isolation, the rewriter that replaces legacy
galleries inside a document, the collaborator interfaces, and HTTP clients for
the WordPress REST API and the target gallery catalog.
"""
