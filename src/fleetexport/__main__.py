"""Allow ``python -m fleetexport``."""

from fleetexport.interface.cli import main

if __name__ == "__main__":
    main()
