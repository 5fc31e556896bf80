def grid_key(x: int, y: int) -> str:
    """Pixel map key of the grid cell (x, y)."""
    return f"{x},{y}"

def parse_grid_key(key: str) -> tuple[int, int]:
    """Inverse of grid_key. Raises ValueError for malformed keys."""
    sx, sy = key.split(",")
    return int(sx), int(sy)
