"""C64 program sharing bot: upload, preview, play."""
