"""Pipeline components: builder, verifier, metadata generator, aggregator, orchestrator."""
