import sys

from shotbar.main import main

sys.exit(main())
