"""Socket-facing pieces: credentials, signing, ids/nonces and the transport."""
