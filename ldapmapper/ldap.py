# python-ldap-faker patches ``<module>.ldap.initialize`` for each module listed
# in ``ldap_modules``, so every connection in this package is opened through
# this re-export rather than through the ldap package directly.
import ldap
from ldap import *  # noqa: F403

__version__ = ldap.__version__
