"""Application layer - mailbox operations and the policies they rely on."""
