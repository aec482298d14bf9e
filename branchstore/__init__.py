"""
branchstore: a JSON document database kept in a GitHub repository.

One branch per user holds that user's documents; the ``registry`` branch holds
the shared index. See ``branchstore.services.factory.build_services`` for the
wiring and ``branchstore.app.create_app`` for the HTTP surface.
"""
