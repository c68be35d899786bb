from hyperbench.cli import main

raise SystemExit(main())
