"""Runtime configuration for the TTS Reader backend and playback client."""
