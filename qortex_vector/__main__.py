import sys

from qortex_vector.cli import main

sys.exit(main())
