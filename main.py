import sys

from lanproxy.serve import main

if __name__ == "__main__":
    sys.exit(main())
