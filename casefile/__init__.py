# Casefile Retrieval Engine
# Citation-grounded answers over forensic case studies

"""
Core invariant: every citation shown to a reader must resolve to a real
case, artifact, or finding held by the CaseLedger.

Answers are assembled from retrieved record fields by deterministic
templates. Nothing is generated by a learned model.
"""
