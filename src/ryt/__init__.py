"""ryt: tooling for JavaScript workspaces.

Finds every module (a directory holding both `.git` and `package.json`)
under one or more search roots and runs git/npm operations across them.
"""

__version__ = "0.6.0"
