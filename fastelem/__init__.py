"""
`fastelem` evaluates arbitrary-order Lagrange basis functions on tensor-product
reference elements, together with field interpolants and the Jacobian of the
isoparametric map.
"""
