"""
The request execution machinery: the response protocol, the deadline timer,
the callback dispatcher and the executor driving them.
"""
