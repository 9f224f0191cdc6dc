"""
CLI entry point, when used as a module: `python -m shimmer`.

Useful for debugging in the IDEs (use the start-mode "Module", module "shimmer").
"""
from shimmer import cli

if __name__ == '__main__':
    cli.main()
