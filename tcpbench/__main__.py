import sys

from tcpbench.cli import main

sys.exit(main())
