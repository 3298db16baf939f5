"""
Altar API - авторские колоды Таро/оракулов и виртуальное гадание.
"""

__version__ = '0.1.0'
