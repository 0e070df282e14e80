"""
Extractors for the text and HTML views of order documents.
"""
