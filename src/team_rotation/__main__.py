"""Entry point for ``python -m team_rotation``."""

from team_rotation.cli import main

if __name__ == "__main__":
    main()
