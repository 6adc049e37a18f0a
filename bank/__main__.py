"""
Bank 진입점

실행 방법:
    python -m bank <command>
"""

from bank.bootstrap import cli

if __name__ == "__main__":
    cli()
