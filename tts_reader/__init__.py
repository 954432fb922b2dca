"""TTS Reader: Polly-backed speech synthesis API and playback core."""
