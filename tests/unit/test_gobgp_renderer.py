from kube_bgp.gobgp import GlobalSection, GoBGPDocument, PeerKind


def test_document_renders_global_and_neighbors_in_order():
    document = GoBGPDocument(GlobalSection(router_id="10.0.0.1", asn=65000))
    document.add_internal_peer("node-b", "10.0.0.2")
    document.add_reflected_peer("203.0.113.1", 65010)

    expected = """[global.config]
  as = 65000
  router-id = "10.0.0.1"

[[neighbors]]
  [neighbors.config]
    neighbor-address = "10.0.0.2"
    peer-as = 65000
    description = "internal:node-b"

[[neighbors]]
  [neighbors.config]
    neighbor-address = "203.0.113.1"
    peer-as = 65010
    description = "external:reflected"
"""
    assert document.render() == expected


def test_document_without_neighbors():
    document = GoBGPDocument(GlobalSection(router_id="10.0.0.1", asn=4200000000))

    assert document.render() == (
        '[global.config]\n  as = 4200000000\n  router-id = "10.0.0.1"\n'
    )


def test_neighbor_kinds():
    document = GoBGPDocument(GlobalSection(router_id="10.0.0.1", asn=65000))
    internal = document.add_internal_peer("node-b", "fd00::2")
    external = document.add_reflected_peer("203.0.113.1", 65010)

    assert internal.kind is PeerKind.INTERNAL
    assert not internal.reflected
    assert external.kind is PeerKind.EXTERNAL
    assert external.reflected


def test_strings_are_escaped():
    document = GoBGPDocument(GlobalSection(router_id="10.0.0.1", asn=65000))
    document.add_internal_peer('odd"name', "10.0.0.2")

    assert 'description = "internal:odd\\"name"' in document.render()


def test_same_as_reflected_peer_renders_route_reflector_table():
    document = GoBGPDocument(GlobalSection(router_id="10.0.0.1", asn=65000))
    section = document.add_reflected_peer("203.0.113.1", 65000)

    assert section.route_reflector_client
    assert document.render().endswith(
        "  [neighbors.route-reflector.config]\n"
        "    route-reflector-client = true\n"
        '    route-reflector-cluster-id = "10.0.0.1"\n'
    )
