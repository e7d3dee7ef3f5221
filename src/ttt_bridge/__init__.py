"""TTT Bridge - terminal tic-tac-toe client over an MQTT topic tree.

A thin client that:
- Runs mosquitto_sub as a long-lived subprocess and frames its output
- Reduces <root>/board, <root>/player, <root>/status and <root>/moves
  messages into a local board
- Publishes moves and reset commands through short-lived mosquitto_pub calls
"""

__version__ = "0.1.0"
