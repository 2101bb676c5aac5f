"""
Facts app.

Holds the in-memory fact store loaded from the references directory and
serves the raw text of each fact.
"""
