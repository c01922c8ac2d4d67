"""
Key derivation, transaction parsing and wallet state.
"""
