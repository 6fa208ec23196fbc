"""
Knowledge Funnel
A personal learning-resource tracker that categorizes saved links and files
by keyword relevance and sequences them into a gated learning roadmap.
"""

__version__ = "0.1.0"
