"""
Utilities package for shared helper functions.
"""

from utils.similarity import levenshtein_distance, similarity

__all__ = ['levenshtein_distance', 'similarity']
