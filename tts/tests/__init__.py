"""
Speech pipeline test suite

Test coverage for:
    - Configuration (TTSConfig validation and environment loading)
    - Providers (ElevenLabs, Mock)
    - Synthesizer (provider call, retry, file output)
    - Transcoder (primary conversion and plain re-encode fallback)
    - Lip-sync extraction and timing document parsing

Run with:
    pytest tts/tests/ -v
"""
