# promptpacker/__init__.py

__version__ = "0.1.0"

# Make main() from cli.py available at the package level
# e.g., for `python -m promptpacker`
from .cli import main
