# utils.py

FREE_COLOR = "#d3d3d3"  # light grey


def get_color(allocated, owner_id=None):
    """Return a color for allocated/free segments, stable per owner id."""
    if not allocated:
        return FREE_COLOR
    # golden-angle hue spacing keeps neighbouring ids apart
    hue = ((owner_id or 0) * 137) % 360
    return f"hsl({hue}, 70%, 75%)"


def format_range(segment):
    return f"[0x{segment.base_address:04x} - 0x{segment.end_address:04x}]"


def format_percent(value):
    return f"{value:.2f}%"
