"""
Delivery channels.

- matrix_client.py: login / session restore
- matrix_connector.py: sync loop + readiness (ChannelStatus)
- matrix_delivery.py: media upload + room post (MessageDelivery)
- offline.py: stand-in when no channel is configured
"""
