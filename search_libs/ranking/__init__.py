"""Search ranking components.

Contents
- ``signals``: text relevance and vector similarity signals
- ``fusion``: the weighted ``HybridScorer``
"""
