import sys

from smart_node.main import run

if __name__ == "__main__":
    sys.exit(run())
