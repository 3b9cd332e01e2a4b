"""
frontdesk/hotel/codecs

Pure encode/decode functions that pack structured state into plain string
fields. None of them log, and none raise on malformed stored data.
"""
