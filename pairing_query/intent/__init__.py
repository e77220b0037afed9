"""Intent extraction and validation.

The intent layer converts an English natural-language question about pairings into a strict
`Intent` object, which is then translated into a deterministic search spec.
"""
