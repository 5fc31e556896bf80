"""
The VIEW layer draws model output with PySide6 (QPainter, QImage, QWidget).
"""
