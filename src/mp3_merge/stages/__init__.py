"""Merge stages that drive ffmpeg.

Pipeline order: validate -> probe -> plan -> compose -> encode -> tag

Stages:
    encode -- Writes files.txt (ffmpeg concat demuxer list with absolute,
              quote-escaped paths) and concatenates the inputs into one MP3
              stream. Stream-copies when every input is MP3, otherwise
              re-encodes with libmp3lame at the configured bitrate.
              Raises EncodeError on a non-zero exit.
    tag    -- Writes metadata.txt (FFMETADATA1 global tags + chapter table)
              and remuxes the merged stream with it and the optional cover
              image (attached_pic) into an ID3v2.4 MP3. Raises TagEmbedError
              on a non-zero exit.

Validation, probing, chapter planning and metadata composition run in
MergeRunner before either stage, so bad input never reaches ffmpeg.
"""
