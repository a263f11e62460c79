"""Domain Interfaces (Ports):

Defines the contracts (Abstract Base Classes and strategy types) that
infrastructure components implement. The cache logic depends on these
interfaces, not on concrete implementations.
"""
