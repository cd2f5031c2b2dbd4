import sys

from fedora_optimizer.cli import main

sys.exit(main())
