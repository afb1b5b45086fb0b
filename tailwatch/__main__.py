import sys

from tailwatch.main import main

sys.exit(main())
