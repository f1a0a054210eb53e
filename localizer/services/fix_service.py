"""
Position-fix replay.

File format (semicolon-delimited, no header):
    timestamp ; x ; y ; z
"""

from ..types import PositionFix


def parse_line_fix_data(data):
    parts = [p for p in data.strip().replace(",", ";").split(";") if p.strip()]
    if len(parts) != 4:
        raise ValueError(f"Invalid fix line: expected timestamp;x;y;z, got {data!r}")
    stamp, x, y, z = (float(p) for p in parts)
    return PositionFix(x, y, z, stamp)


class FixService:

    def __init__(self, file_path):
        self.file_path = file_path

    def fixes(self):
        with open(self.file_path, "r") as f:
            for line in f:
                if line.strip():
                    yield parse_line_fix_data(line)

    def first(self):
        """The first fix in the file, or None for an empty file."""
        return next(self.fixes(), None)
