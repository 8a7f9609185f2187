"""VoiceFlow voice-note backend."""
