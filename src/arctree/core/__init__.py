"""
Core building blocks for ARCTREE: ids, entries, buffering, configuration, logging and the handler registry.

Author: Tim Hosking
Contact: https://github.com/Munger
License: MIT
"""
