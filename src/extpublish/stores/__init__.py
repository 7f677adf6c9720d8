"""
Store submitters.

Each supported extension store implements the StoreSubmitter interface from
`base`; the polling protocol shared by all of them lives in `poll`.
"""
