"""Built-in transform modules.

Each module exposes ``transform(source, options_list, context) -> str``.
"""
