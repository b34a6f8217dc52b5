"""
testnow - simple unit testing by registering test calls.

This package provides tools to:
- Register calls of functions together with their expected outcome
- Run the registered calls one at a time, with timeouts
- Walk a folder lazily and run every test file it holds
- Report the results on the console
"""

__version__ = "1.0.2"
__author__ = "testnow Team"
