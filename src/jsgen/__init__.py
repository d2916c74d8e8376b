# jsgen: JSON parse/stringify code generator for annotated C headers
__version__ = "0.1.0"
