"""
Secret Santa: anonymous gifts, a public wall and a guess-the-sender game.
"""
__version__ = "1.0.0"
