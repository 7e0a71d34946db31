# ridebid/shared/__init__.py
"""
Общие контракты между модулями (события).
"""
