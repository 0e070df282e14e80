"""
Utility helpers for the order document parser.
"""
