from prowflake.scoring.flake import FlakeAccumulator, FlakeAnalyzer, analyze_suites
