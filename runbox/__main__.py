from runbox.cli import main

raise SystemExit(main())
