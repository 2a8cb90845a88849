"""
Account and installation console for the CI service.

Users log in with GitHub, see which of their accounts (their personal account
and the organizations they belong to) have the CI app installed, and enable
or disable those installations.

The interesting parts of this package are:

- :mod:`ciconsole.sessions`, a cookie-addressed, durable session store that
  only writes a session back when it has changed, and which guards the OAuth
  round-trip with a single-use state token;
- :mod:`ciconsole.installations`, which merges the user's GitHub identity,
  their organization memberships, and the installation registry into a single
  list of resources.

Quick start
-----------

.. code-block:: python

   from ciconsole.factory import create_web_app

   app = create_web_app()

"""
