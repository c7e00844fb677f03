"""CodeScope core: repository analysis pipeline.

Subpackages are imported directly (e.g. ``from codescope.core.scanner import
SourceScanner``) so that targeted imports do not pull in the database or
HTTP layers.
"""
