"""
Order document parser.

Parses vendor order confirmations (emails and partner view pages) into a
location record and a hierarchical order item list.
"""

__version__ = '0.1.0'
