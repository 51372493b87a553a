import sys

from en_export.main import main

sys.exit(main())
