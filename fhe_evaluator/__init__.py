"""FHE Evaluator — encrypted scoring over homomorphic ciphertexts."""
