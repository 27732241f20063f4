"""Inter-service message patterns.

Server side: ``handlers.build_dispatcher`` maps pattern names to engine
calls and is served by ``authz.api.rpc`` at ``POST /rpc``.
Client side: ``client.RpcClient`` for other services, over requests.
"""
