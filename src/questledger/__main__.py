from questledger.cli import main

raise SystemExit(main())
