import sys

from wallet_ledger.cli import main

sys.exit(main())
