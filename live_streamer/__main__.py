import sys

from live_streamer.cli import main

sys.exit(main())
