"""Inbound message pipeline: header sniffing, decoding, queues and the dispatcher."""
