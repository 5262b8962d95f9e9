"""Wire contracts shared by the timer core and the peer sync transport."""
