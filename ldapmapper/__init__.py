"""
A data-mapping layer over python-ldap.

Compiles query intents into LDAP search filters, flattens python-ldap's raw
search results into plain records and resolves belongs-to/has-many
relationships between directory subtrees.
"""
