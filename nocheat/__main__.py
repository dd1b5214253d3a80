"""Allows running the package as a module: python -m nocheat"""

from nocheat.cli import app


def main():
    app()


if __name__ == "__main__":
    main()
