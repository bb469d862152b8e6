"""Pipeline stages, one module per concern.

Job order: validate -> metadata -> cover -> acquire -> extract -> concat
-> analyze -> encode -> verify

Stages:
    classify -- Validate stage. Classifies a source location as archive
                (recognized extension, case-insensitive; remote http/https/ftp
                locations are always archives) or directory (no extension,
                exists on disk). Raises InvalidSourceError otherwise.
    metadata -- Chooses explicit or infer mode for the whole run (several
                sources force infer; a directory source forbids it) and
                resolves writer/title/album/year per job. Inference strips
                bitrate, format, archive extension, publisher token, and
                trailing track numbers from the archive name, then
                capitalizes each word. Writer and album reuse the title;
                year is the current year.
    cover    -- Downloads the default cover or a remote one, or validates a
                local file (exists, regular, readable, .jpg/.jpeg/.png).
                Identifies dimensions with ImageMagick and resizes exactly
                once to 300x300 when needed.
    acquire  -- fetch: downloads remote archives into the workspace (local
                sources are used in place). extract: unpacks archives into
                workspace/mp3s with unzip or tar.
    concat   -- Natural-sorts the MP3 tracks and merges them with mp3wrap,
                renaming its _MP3WRAP-suffixed output to merged.mp3. Waits for
                the merged file size to settle before returning.
    analyze  -- Decodes merged.mp3 to headerless PCM with mplayer, logs the
                decoder output to decode.log, and parses the single
                "AO: [pcm]" line for sample rate, channels, and bit depth.
    encode   -- Encodes the PCM with faac into the final M4B with writer,
                album, title, year, genre "Spoken Word", track 1, and the
                cover embedded. verify reads the tags back via ffprobe.
"""
