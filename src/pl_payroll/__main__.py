"""Entry point for running the payroll CLI."""

import sys

from pl_payroll.cli import main

if __name__ == "__main__":
    sys.exit(main())
