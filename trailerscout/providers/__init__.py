"""
Trailer providers for the KinoCheck, OMDb and TMDB APIs.
"""

from .base import TrailerProvider, select_best_trailer, pick_best_match
from .kinocheck import KinoCheckProvider
from .omdb import OMDbProvider
from .tmdb import TMDBProvider

__all__ = [
    'TrailerProvider',
    'select_best_trailer',
    'pick_best_match',
    'KinoCheckProvider',
    'OMDbProvider',
    'TMDBProvider',
]
