"""
Mail Cleaner - empty Gmail categories and trash through the Gmail API
"""

__version__ = "1.0.0"
