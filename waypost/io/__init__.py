"""Format codecs: one module per navigation file format."""
