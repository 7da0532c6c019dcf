import sys

from lfsstore.cli import main

sys.exit(main())
