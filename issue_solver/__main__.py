import sys

from issue_solver.cli.main import main

sys.exit(main())
