from assetscan.cli import main

raise SystemExit(main())
