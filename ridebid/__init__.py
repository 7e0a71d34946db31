# ridebid/__init__.py
"""
ridebid: ядро маркетплейса ставок на поездки:
геопоиск водителей, подсказка цены и аукцион ставок.
"""

__version__ = "0.1.0"
