"""
Financial Reasoning Engine - Source Package

A conversational assistant that answers free-text questions about a
user's finances using ONLY the user's own records.

DESIGN PRINCIPLES:
1. Every number in a response is derived from one snapshot
2. Rules first, external text provider optional
3. Never give investment advice, never use absolute language
4. Simulations never touch real data
5. Every turn is auditable
6. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Financial Reasoning Engine Team"
