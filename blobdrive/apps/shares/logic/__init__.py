"""Business logic layer for shares app.

Share links grant time-limited read access to one object of one owner.
"""
