"""
Subject vocabulary package.

Holds the registry of subject types, their legal actions and the
resource attributes conditions may read.
"""
