"""
The MODEL layer contains pure data structures and numerical logic.
It has NO knowledge of the GUI (Qt).
It deals with expression parsing, evaluation, rasterization and I/O.
"""
