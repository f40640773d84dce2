"""
Property listings: public catalogue, admin management and the live listing feed.
"""
