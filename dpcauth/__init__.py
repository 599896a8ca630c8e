"""Client-side adapter for the DPC document authorisation service.

The adapter asks the remote DPC service whether a user may access a
document and turns the textual answer into a boolean decision:

- AuthorizationClient: builds the /authorise query and parses the reply
- AuthorizationRequestFailed: raised when no decision could be obtained
- DpcAuthorizationProvider: plugs the client into an authorization system
"""
