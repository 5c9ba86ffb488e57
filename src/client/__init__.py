"""
Client Module - Live Document from the Answer Stream
====================================================

Modules:
    config: Client settings (``STREAM_CLIENT_*`` environment variables)
    decoder: Incremental UTF-8 decoder with an IDLE/RECEIVING/COMPLETED/FAILED state machine
    transport: httpx streaming client for ``GET /stream``
    aggregator: Append-only document with turn, completion and error markers
    cli: Terminal client rendering the document as live Markdown

Example:
    Collecting a document::

        from client.aggregator import DocumentAggregator
        from client.transport import StreamingClient

        async with StreamingClient() as client:
            aggregator = DocumentAggregator(client)
            aggregator.submit("What's the weather in Paris today?")
            await aggregator.wait()
            print(aggregator.document)
"""
