"""
PriceTalk backend: FX paper trading, macro bias, learning and community API.
"""
