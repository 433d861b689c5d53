import sys

from .config import load_config
from .core import run_proxy

def main():
    config = load_config()
    return run_proxy(config)

if __name__ == "__main__":
    sys.exit(main())
