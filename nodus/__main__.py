import sys

from nodus.main import main

sys.exit(main())
