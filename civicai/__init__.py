"""
CivicAI - Civic Issue Reporting
Citizen evidence capture and submission, operator dashboard synchronization.
"""

__version__ = "0.3.0"
