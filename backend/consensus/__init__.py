"""
Multi-source prediction consensus for Matchday Consensus.
Collects predictions from independent tipster sources, merges records that
describe the same match, scores agreement and confidence, ranks the result,
and renders digests for the notification channel.
"""
