"""M4B Maker -- turn spoken-word MP3 archives or directories into tagged M4B files.

Core modules:
    config    -- Pipeline configuration via pydantic-settings (.env + env vars).
                 CLI flags passed as kwargs to PipelineConfig (no env pollution).
    cli       -- Click CLI entry point: SOURCE... DESTINATION with -a/-i/-p/-t/-w/-y.
                 Every failure, usage error, and -h exits with status 1.
    runner    -- Job orchestration: classifies all sources and checks run-level
                 metadata rules and tool dependencies before the first job, then
                 runs each job's stages in order inside its own workspace. The
                 first failure aborts the run unless keep_going is set.
    workspace -- Owner-only temp dir per job (pid in the name), removed on exit.
    tools     -- Subprocess wrapper with explicit exit status and optional
                 timeout, plus PATH checks for the external tools.
    fetch     -- Streaming HTTP(S) download via httpx.
    ffprobe   -- Tag read-back for output verification.
    sanitize  -- Filename sanitization for filesystem safety.

Subpackages:
    stages    -- classify, metadata, cover, acquire, concat, analyze, encode.
"""
