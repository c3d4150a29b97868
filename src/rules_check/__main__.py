from rules_check.cli import main


raise SystemExit(main())
