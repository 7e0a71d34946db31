# ridebid/core/__init__.py
"""
Бизнес-логика маркетплейса: геопоиск, подсказка цены, аукцион ставок.
"""
