"""
EnviroVoice relay.

Websocket signaling hub for Minecraft proximity voice chat. Browser overlays
join under a gamertag, exchange WebRTC offers, answers and ICE candidates
through the relay, share push-to-talk state, and receive the game snapshot
that the Minecraft integration POSTs.
"""

__version__ = "2.0.0"
