"""Allow `python -m relocal`."""
from .cli import main

if __name__ == "__main__":
    main()
