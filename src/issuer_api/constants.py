"""Constants shared by the issuer resources and controllers."""

# API Group
API_GROUP = "horizon.k8s.evertrust.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# cert-manager CRD coordinates
CERT_MANAGER_GROUP = "cert-manager.io"
CERT_MANAGER_VERSION = "v1"
CERTIFICATE_REQUEST_PLURAL = "certificaterequests"

# Resource Kinds
KIND_ISSUER = "Issuer"
KIND_CLUSTER_ISSUER = "ClusterIssuer"
ISSUER_PLURALS = {
    KIND_ISSUER: "issuers",
    KIND_CLUSTER_ISSUER: "clusterissuers",
}

# Annotations
REQUEST_ID_ANNOTATION = "horizon.evertrust.io/request-id"

# Condition Status
CONDITION_TRUE = "True"
CONDITION_FALSE = "False"
CONDITION_UNKNOWN = "Unknown"

# Condition Types
COND_READY = "Ready"
COND_APPROVED = "Approved"
COND_DENIED = "Denied"

# Ready Reasons
REASON_PENDING = "Pending"
REASON_ISSUED = "Issued"
REASON_DENIED = "Denied"
REASON_FAILED = "Failed"

# Approval by the external authority
APPROVED_REASON = "horizon.evertrust.io"
APPROVED_MESSAGE = "Request approved on Horizon"

# Messages
MESSAGE_ISSUED = "Signed"
MESSAGE_SUBMITTED = "Submitted request to Horizon"
MESSAGE_DENIED = "The CertificateRequest was denied by an approval controller"

# Issuer health check
ISSUER_READY_REASON = "horizon-issuer.IssuerController.Reconcile"
ISSUER_FIRST_SEEN_MESSAGE = "First seen"
ISSUER_HEALTHY_MESSAGE = "Success"

# Credential secret keys
SECRET_USERNAME_KEY = "username"
SECRET_PASSWORD_KEY = "password"
