"""
Mix Suggestion Module: Decide which tracks mix well and lay out track structure.

- Camelot wheel harmonic matching (same, relative, adjacent keys)
- Tempo bands: direct ±10%, double time, half time
- Gapless structure timeline from sparse labeled timestamps
"""

__all__ = ["harmonic", "suggest", "timeline"]
