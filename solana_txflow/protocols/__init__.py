"""
On-chain program support

Each program package provides its instruction layouts, builders and
account state parsers.
"""
