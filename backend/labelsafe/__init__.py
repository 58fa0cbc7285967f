"""
Deterministic food-label safety engine.
Raw label text -> ParsedLabel -> per-profile PolicyResult -> AnalysisResult.
"""
__version__ = "0.1.0"
