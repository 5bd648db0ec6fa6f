"""
Application Layer

Orchestrates the voice session, the audio sink and the decoder.

Structure:
- interfaces/: Port interfaces for infrastructure adapters
- services/: Playback loop, reconnection supervisor and session manager
"""
