# media_saver/core/__init__.py
"""
Core -- pure types and rules of the acquisition pipeline.

Canonical imports:
    from media_saver.core.target import SaveTarget
    from media_saver.core.errors import FormatUnsupportedError
    from media_saver.core.ports import TransformProgram
"""
