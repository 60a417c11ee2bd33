"""
Kiln - Crafting Puzzle Decision Engine

A deterministic engine that recommends the next action in a turn-based
crafting puzzle. Given the current craft state, targets and condition
forecast it provides:
- Immutable state modeling
- Declarative action catalogs and effect resolution
- Layered state scoring
- Bounded, memoized lookahead search
- Recommendations, alternatives and rotations
"""

__version__ = "0.1.0"
