"""Null-field cleaner for the MongoDB and Aerospike profile stores."""

__version__ = '1.0.0'
