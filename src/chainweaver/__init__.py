"""ChainWeaver signer: stateless sign-and-send relay for NEAR transfers."""

__version__ = "0.2.0"
