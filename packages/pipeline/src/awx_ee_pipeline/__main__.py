from awx_ee_pipeline.cli import main

raise SystemExit(main())
