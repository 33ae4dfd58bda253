from shunt.cli import main

raise SystemExit(main())
